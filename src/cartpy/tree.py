# -*- coding: utf-8 -*-
"""
cartpy.tree
===========

The fitted regression tree.

A :class:`RegressionTree` stores its nodes in an arena: a tuple of
:class:`TreeNode` records addressed by index, with index 0 the root.
Internal nodes refer to their children by index. Nodes keep their row count,
mean response and SSE whether they split or not, so importance and reporting
can be read straight off the arena.

The tree is immutable once built; prediction, importance and export only
read it and are safe to call from any number of threads.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

import numpy as np

from .exceptions import SchemaMismatchError
from .schema import Schema


# -----------------------------------------------------------------------------
# Node
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class TreeNode:
    """One node of the arena.

    Attributes
    ----------
    n_samples : int
        Training rows that reached the node.
    value : float
        Mean response of those rows; the prediction when the node is a leaf.
    sse : float
        Sum of squared deviations of those rows around ``value``.
    depth : int
        Distance from the root (root = 0).
    feature_index : int or None
        Feature tested at an internal node.
    split_type : {"numeric", "categorical"} or None
    threshold : float or None
        Numeric cut (``x <= threshold`` goes left) or categorical level code
        (``x == level`` goes left).
    reduction : float
        SSE removed by the split; ``0.0`` for leaves.
    left, right : int
        Arena indices of the children; ``-1`` for leaves.
    """

    n_samples: int
    value: float
    sse: float
    depth: int
    feature_index: Optional[int] = None
    split_type: Optional[str] = None
    threshold: Optional[float] = None
    reduction: float = 0.0
    left: int = -1
    right: int = -1

    @property
    def is_leaf(self) -> bool:
        return self.left < 0

    def goes_left(self, v: float) -> bool:
        # NaN and unseen level codes fail both tests and go right
        if self.split_type == "numeric":
            return bool(v <= self.threshold)
        return bool(v == self.threshold)


# -----------------------------------------------------------------------------
# Tree
# -----------------------------------------------------------------------------
class RegressionTree:
    """A fitted regression tree.

    Parameters
    ----------
    nodes : tuple of TreeNode
        Arena, root first.
    schema : Schema
        Features the tree was trained against.
    max_depth, max_nodes, min_samples_leaf : int or None
        Stopping parameters used when growing the tree.
    """

    def __init__(self, nodes: Tuple[TreeNode, ...], schema: Schema, *,
                 max_depth: Optional[int] = None, max_nodes: Optional[int] = None,
                 min_samples_leaf: int = 1):
        self._nodes = tuple(nodes)
        self.schema = schema
        self.max_depth = max_depth
        self.max_nodes = max_nodes
        self.min_samples_leaf = min_samples_leaf

    def __repr__(self) -> str:
        return (f"RegressionTree(n_features={self.n_features}, node_count={self.node_count}, "
                f"leaf_count={self.leaf_count}, depth={self.depth})")

    # ---- structure ---------------------------------------------------------

    @property
    def nodes(self) -> Tuple[TreeNode, ...]:
        return self._nodes

    @property
    def root(self) -> TreeNode:
        return self._nodes[0]

    @property
    def n_features(self) -> int:
        return len(self.schema)

    @property
    def feature_names(self):
        return self.schema.names

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def leaf_count(self) -> int:
        return sum(1 for nd in self._nodes if nd.is_leaf)

    @property
    def depth(self) -> int:
        return max(nd.depth for nd in self._nodes)

    def leaves(self) -> Iterator[TreeNode]:
        return (nd for nd in self._nodes if nd.is_leaf)

    # ---- prediction --------------------------------------------------------

    def _leaf_index(self, x: np.ndarray) -> int:
        i = 0
        node = self._nodes[0]
        while not node.is_leaf:
            i = node.left if node.goes_left(x[node.feature_index]) else node.right
            node = self._nodes[i]
        return i

    def predict(self, x) -> float:
        """Predict the response for one raw feature vector.

        Raises
        ------
        SchemaMismatchError
            If ``x`` does not have one value per schema feature, or a numeric
            feature receives a non-numeric value.
        """
        xe = self.schema.encode_row(x)
        return self._nodes[self._leaf_index(xe)].value

    def apply(self, X) -> np.ndarray:
        """Arena index of the leaf reached by each row of ``X``."""
        Xe = self._encode_batch(X)
        return np.fromiter((self._leaf_index(row) for row in Xe), dtype=np.int64, count=Xe.shape[0])

    def predict_many(self, X) -> np.ndarray:
        values = np.array([nd.value for nd in self._nodes], dtype=float)
        return values[self.apply(X)]

    def _encode_batch(self, X) -> np.ndarray:
        if np.ndim(X) != 2:
            raise SchemaMismatchError(
                f"expected a 2-D input with {self.n_features} columns, got {np.ndim(X)} dimensions",
                expected=self.n_features, received=np.shape(X),
            )
        return self.schema.encode(X)

    # ---- importance --------------------------------------------------------

    def importance(self) -> np.ndarray:
        """Total SSE reduction contributed by each feature.

        Each internal node adds its stored ``reduction`` to the slot of the
        feature it splits on, in arena order. The reduction is already an SSE
        (a sum over the node's rows), so no further row weighting is applied.
        Features never split on stay exactly ``0.0``.
        """
        out = np.zeros(self.n_features, dtype=float)
        for nd in self._nodes:
            if not nd.is_leaf:
                out[nd.feature_index] += nd.reduction
        return out

    def mse(self, X, y) -> float:
        """Mean squared error of the tree's predictions on ``X``."""
        y = np.asarray(y, dtype=float)
        resid = y - self.predict_many(X)
        return float(np.mean(resid * resid))
