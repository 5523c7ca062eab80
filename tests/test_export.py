import re

import numpy as np

import cartpy
from cartpy.export import decision_path, export_graphviz, export_rules, to_text

_NODE = re.compile(r'^\s*(\d+) \[label="(.*)"\]$')
_EDGE = re.compile(r'^\s*(\d+) -> (\d+) \[label="?(True|False)"?\]$')


def _tiny_tree():
    """Return a small tree on a numeric and a categorical feature."""
    X = np.array([[1.0, "A"], [2.0, "A"], [3.0, "B"], [4.0, "B"],
                  [5.0, "A"], [6.0, "C"], [7.0, "B"], [8.0, "C"]], dtype=object)
    y = np.array([1.0, 1.2, 3.0, 3.1, 1.1, 8.0, 3.2, 8.4])
    return cartpy.fit(X, y, min_samples_leaf=1, feature_names=["num", "cat"]), X


def _parse(source):
    nodes, edges = {}, []
    for line in source.splitlines():
        m = _NODE.match(line)
        if m:
            nodes[int(m.group(1))] = m.group(2)
            continue
        m = _EDGE.match(line)
        if m:
            edges.append((int(m.group(1)), int(m.group(2)), m.group(3)))
    return nodes, edges


def test_dot_reflects_tree_structure():
    tree, _ = _tiny_tree()
    nodes, edges = _parse(cartpy.dot(tree))
    assert len(nodes) == tree.node_count
    assert len(edges) == 2 * (tree.node_count - tree.leaf_count)
    leaf_labels = {i: lab for i, lab in nodes.items() if lab.startswith("value = ")}
    assert sorted(leaf_labels) == [i for i, nd in enumerate(tree.nodes) if nd.is_leaf]
    for i, lab in leaf_labels.items():
        assert lab.split("\\n")[0] == f"value = {tree.nodes[i].value:.6g}"
    for parent, child, branch in edges:
        nd = tree.nodes[parent]
        assert child == (nd.left if branch == "True" else nd.right)


def test_dot_labels_internal_nodes_with_feature_and_test():
    tree, _ = _tiny_tree()
    nodes, _ = _parse(cartpy.dot(tree))
    for i, nd in enumerate(tree.nodes):
        if nd.is_leaf:
            continue
        name = tree.feature_names[nd.feature_index]
        assert nodes[i].startswith(name + (" <= " if nd.split_type == "numeric" else " == "))


def test_dot_is_pure_and_deterministic():
    tree, _ = _tiny_tree()
    before = tree.nodes
    assert cartpy.dot(tree) == cartpy.dot(tree)
    assert tree.nodes == before


def test_text_dump_lists_every_node():
    tree, _ = _tiny_tree()
    text = to_text(tree)
    body = text.splitlines()[3:]
    assert len(body) == tree.node_count
    assert sum(line.endswith(" *") for line in body) == tree.leaf_count
    assert body[0].startswith("0) root")


def test_rules_cover_every_leaf():
    tree, X = _tiny_tree()
    rules = export_rules(tree)
    assert len(rules) == tree.leaf_count
    assert all("=>" in r and "value=" in r for r in rules)
    # the rule followed by a row is the antecedent of one exported rule
    antecedents = {r.split(" => ")[0] for r in rules}
    assert all(decision_path(tree, x) in antecedents for x in X)


def test_decision_path_marks_missing_numeric_values():
    X = np.array([[1.0], [2.0], [3.0], [4.0]])
    tree = cartpy.fit(X, [0.0, 0.0, 5.0, 5.0], min_samples_leaf=1)
    assert decision_path(tree, [None]) == "X[0] MISSING"
    assert decision_path(tree, [1.0]) == "X[0] <= 2.5"


def test_export_graphviz_writes_dot_file(tmp_path):
    tree, _ = _tiny_tree()
    out_path = export_graphviz(tree, str(tmp_path / "tiny"), format="dot")
    assert out_path.endswith(".dot")
    with open(out_path) as fh:
        assert fh.read().strip().endswith("}")
