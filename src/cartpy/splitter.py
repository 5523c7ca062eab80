"""Best-split search for one node.

Numeric features are scanned in sorted order and scored at every boundary
between distinct consecutive values; categorical features are scored one
level against the rest. The best candidate over all eligible features wins;
ties go to the lowest feature index, then to the first boundary or level
encountered.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np

from .schema import Schema
from .stats import ColumnStats, centered, group_reductions, sweep_reductions

# Reductions at or below this fraction of the node SSE are rounding noise.
_REL_TOL = 1e-12


@dataclass(frozen=True)
class Split:
    feature_index: int
    split_type: str  # "numeric" or "categorical"
    threshold: float  # numeric cut, or level code for categorical splits
    reduction: float
    n_left: int
    n_right: int

    def goes_left(self, column: np.ndarray) -> np.ndarray:
        """Boolean mask of the values routed to the left child."""
        if self.split_type == "numeric":
            return column <= self.threshold
        return column == self.threshold


def _numeric_candidate(col: np.ndarray, yc: np.ndarray, min_leaf: int):
    order = np.argsort(col, kind="mergesort")
    v = col[order]
    red = sweep_reductions(yc[order])
    n = v.size
    # boundary i separates v[i] and v[i + 1]; NaN sorts last and stays right
    ok = (v[:-1] < v[1:]) & ~np.isnan(v[1:])
    ok &= np.isfinite(red)
    n_left = np.arange(1, n)
    ok &= (n_left >= min_leaf) & (n - n_left >= min_leaf)
    if not ok.any():
        return None
    scores = np.where(ok, red, -np.inf)
    i = int(np.argmax(scores))
    thr = 0.5 * (v[i] + v[i + 1])
    if not (v[i] <= thr < v[i + 1]):
        thr = float(v[i])
    return float(scores[i]), float(thr), i + 1, n - i - 1


def _categorical_candidate(col: np.ndarray, yc: np.ndarray, n_levels: int, min_leaf: int):
    if n_levels == 0:
        return None
    red, counts = group_reductions(col, yc, n_levels)
    n = yc.size
    ok = (counts >= min_leaf) & (n - counts >= min_leaf) & np.isfinite(red)
    if not ok.any():
        return None
    scores = np.where(ok, red, -np.inf)
    k = int(np.argmax(scores))
    return float(scores[k]), float(k), int(counts[k]), n - int(counts[k])


def find_best_split(X: np.ndarray, y: np.ndarray, rows: np.ndarray, schema: Schema,
                    min_samples_leaf: int, features: Optional[Iterable[int]] = None) -> Optional[Split]:
    """Return the best split of ``rows`` or ``None`` if no candidate is eligible.

    Parameters
    ----------
    X : ndarray of shape (n_rows, n_features)
        Encoded feature matrix (see :meth:`Schema.encode`).
    y : ndarray of shape (n_rows,)
        Response.
    rows : ndarray of int
        Rows belonging to the node.
    schema : Schema
        Feature kinds and levels.
    min_samples_leaf : int
        Minimum row count on each side of a split.
    features : iterable of int, optional
        Feature indices to consider, visited in ascending order. Defaults to
        all features.

    Notes
    -----
    Candidates are scored on the node's responses centered and divided by
    their largest deviation, so the scan is free of overflow for any finite
    response. The returned ``reduction`` is converted back to SSE units.
    """
    yr = y[rows]
    if yr.size < 2 or np.ptp(yr) == 0.0:
        return None
    u, scale = centered(yr)
    floor = _REL_TOL * ColumnStats.of(u).sse
    candidates = range(len(schema)) if features is None else sorted(set(int(j) for j in features))

    best: Optional[Split] = None
    best_score = -np.inf
    for j in candidates:
        spec = schema[j]
        col = X[rows, j]
        if spec.is_categorical:
            found = _categorical_candidate(col, u, len(spec.levels), min_samples_leaf)
            kind = "categorical"
        else:
            found = _numeric_candidate(col, u, min_samples_leaf)
            kind = "numeric"
        if found is None:
            continue
        score, thr, n_left, n_right = found
        if not np.isfinite(score) or score <= floor:
            continue
        if best is None or score > best_score:
            best_score = score
            best = Split(j, kind, thr, score * scale * scale, n_left, n_right)
    return best
