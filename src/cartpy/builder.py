"""Greedy best-first growth of a regression tree.

Every node is first *evaluated*: its mean and SSE are computed and, unless a
stopping rule applies, the best split of its rows is searched. Evaluated
nodes that found a split wait in a priority queue ordered by reduction
(largest first, earlier nodes first on ties). The builder repeatedly pops the
best one, takes two nodes from the :class:`NodeBudget`, partitions the rows
and evaluates both children. When the budget cannot grant two more nodes,
growth stops and everything still queued stays a leaf.

Evaluating a node only reads the shared data, so the two children of a split
are evaluated as independent jobs (``n_jobs``); the queue and the arena are
touched only by the driving thread, and the budget is the single counter that
all of a fit's work shares.
"""
from __future__ import annotations

import heapq
import numbers
import threading
from dataclasses import dataclass
from typing import Iterable, List, Optional

import numpy as np
from joblib import Parallel, delayed
from loguru import logger

from .exceptions import InsufficientDataError, InvalidParameterError
from .schema import Schema
from .splitter import Split, find_best_split
from .stats import ColumnStats, centered
from .tree import RegressionTree, TreeNode

DEFAULT_MAX_DEPTH: Optional[int] = None
DEFAULT_MAX_NODES: Optional[int] = None
DEFAULT_MIN_SAMPLES_LEAF: int = 5


def _check_positive(name: str, value, allow_none: bool = False) -> None:
    if value is None and allow_none:
        return
    if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value <= 0:
        raise InvalidParameterError(name, value)


def check_parameters(max_depth=DEFAULT_MAX_DEPTH, max_nodes=DEFAULT_MAX_NODES,
                     min_samples_leaf=DEFAULT_MIN_SAMPLES_LEAF, n_jobs=None) -> None:
    """Reject invalid stopping parameters before any work starts."""
    _check_positive("max_depth", max_depth, allow_none=True)
    _check_positive("max_nodes", max_nodes, allow_none=True)
    _check_positive("min_samples_leaf", min_samples_leaf)
    if n_jobs is not None and (isinstance(n_jobs, bool) or not isinstance(n_jobs, numbers.Integral)
                               or n_jobs == 0):
        raise InvalidParameterError("n_jobs", n_jobs, reason="must be None or a non-zero integer")


class NodeBudget:
    """Thread-safe count of the nodes a single tree may still create."""

    def __init__(self, max_nodes: Optional[int]):
        self.max_nodes = max_nodes
        self._used = 0
        self._lock = threading.Lock()

    @property
    def used(self) -> int:
        with self._lock:
            return self._used

    def reserve(self, k: int = 1) -> bool:
        """Take ``k`` nodes at once; return False (taking none) if they do not fit."""
        with self._lock:
            if self.max_nodes is not None and self._used + k > self.max_nodes:
                return False
            self._used += k
            return True


@dataclass
class _Candidate:
    rows: Optional[np.ndarray]
    depth: int
    value: float
    sse: float
    n_samples: int
    split: Optional[Split] = None
    left: int = -1
    right: int = -1

    def freeze(self) -> TreeNode:
        if self.left < 0:
            return TreeNode(self.n_samples, self.value, self.sse, self.depth)
        s = self.split
        return TreeNode(self.n_samples, self.value, self.sse, self.depth,
                        feature_index=s.feature_index, split_type=s.split_type,
                        threshold=s.threshold, reduction=s.reduction,
                        left=self.left, right=self.right)


class TreeBuilder:
    """Grows one :class:`RegressionTree` per :meth:`build` call.

    Parameters
    ----------
    max_depth : int or None, default=None
        Deepest level a node may reach (root = 0). ``None`` means unbounded.
    max_nodes : int or None, default=None
        Cap on the total number of nodes, internal and leaves. ``None``
        means unbounded; a tree never has more than ``2 * n_rows - 1`` nodes.
    min_samples_leaf : int, default=5
        Minimum rows in every leaf. Nodes with fewer than twice this many
        rows are not split.
    n_jobs : int or None, default=None
        Workers used to evaluate the children of a split (joblib semantics:
        ``None`` is one, ``-1`` is all cores). The tree does not depend on it.
    features : iterable of int, optional
        Restrict the split search to these feature indices.
    """

    def __init__(self, *, max_depth: Optional[int] = DEFAULT_MAX_DEPTH,
                 max_nodes: Optional[int] = DEFAULT_MAX_NODES,
                 min_samples_leaf: int = DEFAULT_MIN_SAMPLES_LEAF,
                 n_jobs: Optional[int] = None,
                 features: Optional[Iterable[int]] = None):
        check_parameters(max_depth, max_nodes, min_samples_leaf, n_jobs)
        self.max_depth = max_depth
        self.max_nodes = max_nodes
        self.min_samples_leaf = int(min_samples_leaf)
        self.n_jobs = n_jobs
        self.features = None if features is None else sorted(set(int(j) for j in features))

    def build(self, X: np.ndarray, y: np.ndarray, schema: Schema) -> RegressionTree:
        """Grow a tree on the encoded matrix ``X`` and response ``y``.

        Raises
        ------
        InvalidParameterError
            If ``X`` and ``y`` disagree in length, ``X`` does not match the
            schema, or ``y`` has non-finite values.
        InsufficientDataError
            If there are fewer than ``2 * min_samples_leaf`` rows.
        """
        X = np.asarray(X, dtype=float)
        y = np.asarray(y, dtype=float).ravel()
        if X.ndim != 2 or X.shape[1] != len(schema):
            raise InvalidParameterError("X", X.shape, reason=f"must be 2-D with {len(schema)} columns")
        if X.shape[0] != y.shape[0]:
            raise InvalidParameterError("y", y.shape[0], reason=f"length must match X rows ({X.shape[0]})")
        if not np.all(np.isfinite(y)):
            raise InvalidParameterError("y", "non-finite values", reason="must be finite")
        if self.features is not None and any(not 0 <= j < len(schema) for j in self.features):
            raise InvalidParameterError("features", self.features, reason=f"must index one of {len(schema)} features")
        n = y.shape[0]
        if n < 2 * self.min_samples_leaf:
            raise InsufficientDataError(n, self.min_samples_leaf)

        budget = NodeBudget(self.max_nodes)
        budget.reserve(1)
        arena: List[_Candidate] = [self._evaluate(X, y, schema, np.arange(n), 0)]
        queue = []
        if arena[0].split is not None:
            queue.append((-arena[0].split.reduction, 0))

        with Parallel(n_jobs=self.n_jobs, prefer="threads") as parallel:
            while queue:
                _, idx = heapq.heappop(queue)
                node = arena[idx]
                if not budget.reserve(2):
                    logger.debug("node budget of {} reached; {} pending splits left unexpanded",
                                 self.max_nodes, len(queue) + 1)
                    break
                split = node.split
                mask = split.goes_left(X[node.rows, split.feature_index])
                parts = (node.rows[mask], node.rows[~mask])
                node.rows = None
                children = parallel(delayed(self._evaluate)(X, y, schema, rows, node.depth + 1)
                                    for rows in parts)
                node.left, node.right = len(arena), len(arena) + 1
                arena.extend(children)
                logger.debug("split node {} on {} ({}) reduction={:.6g} n_left={} n_right={}",
                             idx, schema[split.feature_index].name, split.threshold,
                             split.reduction, parts[0].size, parts[1].size)
                for child in (node.left, node.right):
                    if arena[child].split is not None:
                        heapq.heappush(queue, (-arena[child].split.reduction, child))

        tree = RegressionTree(tuple(c.freeze() for c in arena), schema,
                              max_depth=self.max_depth, max_nodes=self.max_nodes,
                              min_samples_leaf=self.min_samples_leaf)
        logger.info("grew tree on {} rows: {} nodes, {} leaves, depth {}",
                    n, tree.node_count, tree.leaf_count, tree.depth)
        return tree

    def _evaluate(self, X: np.ndarray, y: np.ndarray, schema: Schema,
                  rows: np.ndarray, depth: int) -> _Candidate:
        yr = y[rows]
        value = float(yr.mean())
        u, scale = centered(yr)
        sse = ColumnStats.of(u).sse * scale * scale
        node = _Candidate(rows=rows, depth=depth, value=value, sse=sse, n_samples=int(rows.size))
        if rows.size < 2 * self.min_samples_leaf:
            return node
        if self.max_depth is not None and depth >= self.max_depth:
            return node
        if sse <= 0.0 or np.ptp(yr) == 0.0:
            return node
        node.split = find_best_split(X, y, rows, schema, self.min_samples_leaf,
                                     features=self.features)
        return node
