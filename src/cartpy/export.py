"""Read-only renderings of a fitted tree: DOT graph, text dump and rules.

None of these functions modify the tree, and all of them produce the same
output for the same tree.
"""
from __future__ import annotations

from typing import Any, List, Optional, Sequence

from graphviz import Digraph, ExecutableNotFound

from .tree import RegressionTree, TreeNode


def _names(tree: RegressionTree, feature_names: Optional[Sequence[str]]) -> List[str]:
    return list(feature_names) if feature_names is not None else tree.feature_names


def _condition(tree: RegressionTree, node: TreeNode, fn: Sequence[str], left: bool) -> str:
    name = fn[node.feature_index]
    if node.split_type == "numeric":
        op = "<=" if left else ">"
        return f"{name} {op} {node.threshold:.6g}"
    level = tree.schema[node.feature_index].level(node.threshold)
    return f"{name} {'==' if left else '!='} {level}"


def _escape(text: Any) -> str:
    return str(text).replace("\\", "\\\\").replace('"', '\\"')


# ----------------------------- DOT -----------------------------

def to_digraph(tree: RegressionTree, feature_names: Optional[Sequence[str]] = None) -> Digraph:
    """Build a :class:`graphviz.Digraph` of the tree.

    Node ids are arena indices. Internal nodes show their test, row count and
    SSE reduction; leaves show their predicted value and row count. The edge
    to the left child is labelled ``True`` and to the right child ``False``.
    """
    fn = _names(tree, feature_names)
    dot = Digraph(name="RegressionTree", comment="cartpy regression tree")
    dot.attr("node", shape="box")
    for i, node in enumerate(tree.nodes):
        if node.is_leaf:
            label = f"value = {node.value:.6g}\\nn = {node.n_samples}"
        else:
            label = (f"{_escape(_condition(tree, node, fn, True))}\\nn = {node.n_samples}"
                     f"\\nreduction = {node.reduction:.6g}")
        dot.node(str(i), label)
    for i, node in enumerate(tree.nodes):
        if not node.is_leaf:
            dot.edge(str(i), str(node.left), label="True")
            dot.edge(str(i), str(node.right), label="False")
    return dot


def to_dot(tree: RegressionTree, feature_names: Optional[Sequence[str]] = None) -> str:
    """DOT source of the tree (see :func:`to_digraph`)."""
    return to_digraph(tree, feature_names).source


def export_graphviz(tree: RegressionTree, filename: str = "cart_tree",
                    feature_names: Optional[Sequence[str]] = None, format: str = "png") -> str:
    """
    Write the tree with Graphviz.

    With ``format='dot'`` only the DOT source is written, which needs no
    Graphviz binary. Other formats are rendered through the ``dot``
    executable; if it is not available the DOT source is written instead.

    Returns
    -------
    str
        Path of the written file.
    """
    dot = to_digraph(tree, feature_names)
    dot.format = format
    if format.lower() == "dot":
        path = f"{filename}.dot"
        dot.save(path)
        return path
    try:
        return dot.render(filename, cleanup=True)
    except ExecutableNotFound:
        fallback_path = f"{filename}.dot"
        dot.save(fallback_path)
        return fallback_path


# ----------------------------- Text -----------------------------

def to_text(tree: RegressionTree, feature_names: Optional[Sequence[str]] = None) -> str:
    """Indented listing, one line per node, in depth-first order.

    Each line reads ``<id>) <condition> n=<rows> sse=<sse> value=<mean>`` and
    leaves are marked with ``*``.
    """
    fn = _names(tree, feature_names)
    lines = ["node), split, n, sse, value", "* denotes terminal node", ""]

    def walk(i: int, cond: str, indent: str) -> None:
        node = tree.nodes[i]
        star = " *" if node.is_leaf else ""
        lines.append(f"{indent}{i}) {cond} n={node.n_samples} sse={node.sse:.6g} value={node.value:.6g}{star}")
        if not node.is_leaf:
            walk(node.left, _condition(tree, node, fn, True), indent + "  ")
            walk(node.right, _condition(tree, node, fn, False), indent + "  ")

    walk(0, "root", "")
    return "\n".join(lines)


# ----------------------------- Rules -----------------------------

def export_rules(tree: RegressionTree, feature_names: Optional[Sequence[str]] = None) -> List[str]:
    """
    One rule per leaf, left to right.

    Each rule has the form ``"<antecedent> => value=<prediction> (N=<rows>)"``
    where the antecedent joins the conditions on the path with ``AND``.
    """
    fn = _names(tree, feature_names)
    rules: List[str] = []

    def collect(i: int, parts: List[str]) -> None:
        node = tree.nodes[i]
        if node.is_leaf:
            antecedent = " AND ".join(parts) if parts else "<root>"
            rules.append(f"{antecedent} => value={node.value:.6g} (N={node.n_samples})")
            return
        collect(node.left, parts + [_condition(tree, node, fn, True)])
        collect(node.right, parts + [_condition(tree, node, fn, False)])

    collect(0, [])
    return rules


def decision_path(tree: RegressionTree, x, feature_names: Optional[Sequence[str]] = None) -> str:
    """Antecedent of the rule that fires for the raw feature vector ``x``."""
    fn = _names(tree, feature_names)
    xe = tree.schema.encode_row(x)
    parts: List[str] = []
    node = tree.root
    while not node.is_leaf:
        v = xe[node.feature_index]
        left = node.goes_left(v)
        if node.split_type == "numeric" and v != v:
            parts.append(f"{fn[node.feature_index]} MISSING")
        else:
            parts.append(_condition(tree, node, fn, left))
        node = tree.nodes[node.left if left else node.right]
    return " AND ".join(parts) if parts else "<root>"
