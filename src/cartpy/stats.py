"""Running response statistics used to score candidate splits.

A :class:`ColumnStats` keeps ``count``, ``total`` and ``total_sq`` of a set of
responses, which is all that is needed for the sum of squared deviations

    SSE = total_sq - total**2 / count

so a split can be scored without rescanning rows. The fields may be scalars or
aligned arrays; an array-valued accumulator holds one subset per entry and
every operation below works entry by entry.

Callers pass responses through :func:`centered` first. SSE is shift
invariant, and after dividing by the largest deviation every sum stays within
``[-n, n]``, so neither the subtraction above nor the squares can overflow
whatever the magnitude of the responses.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

import numpy as np

Number = Union[float, np.ndarray]


def _sse(count, total, total_sq):
    # Elementwise on arrays; empty groups have SSE 0.
    with np.errstate(divide="ignore", invalid="ignore"):
        out = np.where(count > 0, total_sq - (total * total) / np.maximum(count, 1), 0.0)
    return np.maximum(out, 0.0)


def centered(values) -> Tuple[np.ndarray, float]:
    """Center ``values`` on their mean and divide by the largest deviation.

    Returns ``(u, scale)`` with ``values - mean == u * scale``. Sums of squares
    computed on ``u`` convert back to the original units by ``* scale**2``.
    """
    v = np.asarray(values, dtype=float)
    if v.size == 0:
        return v, 1.0
    u = v - v.mean()
    scale = float(np.max(np.abs(u)))
    if scale == 0.0 or not np.isfinite(scale):
        return u, 1.0
    return u / scale, scale


@dataclass
class ColumnStats:
    count: Number = 0
    total: Number = 0.0
    total_sq: Number = 0.0

    @classmethod
    def of(cls, values) -> "ColumnStats":
        v = np.asarray(values, dtype=float)
        return cls(int(v.size), float(v.sum()), float(np.dot(v, v)))

    @classmethod
    def prefixes(cls, values) -> "ColumnStats":
        """Entry ``i`` accumulates ``values[:i + 1]`` for ``i < len(values) - 1``.

        This is the whole left-hand sweep of a sorted scan at once: each entry
        is the previous one with the next row moved in from the right.
        """
        v = np.asarray(values, dtype=float)
        n = v.size
        return cls(np.arange(1, n, dtype=float), np.cumsum(v)[:-1], np.cumsum(v * v)[:-1])

    @classmethod
    def groups(cls, codes, values, n_groups: int) -> "ColumnStats":
        """Entry ``k`` accumulates the values whose code is ``k``.

        Codes outside ``range(n_groups)`` (missing or unseen levels) are
        counted in no group.
        """
        v = np.asarray(values, dtype=float)
        c = np.asarray(codes)
        valid = (c >= 0) & (c < n_groups)
        idx = c[valid].astype(np.int64)
        w = v[valid]
        return cls(np.bincount(idx, minlength=n_groups).astype(float),
                   np.bincount(idx, weights=w, minlength=n_groups),
                   np.bincount(idx, weights=w * w, minlength=n_groups))

    def __add__(self, other: "ColumnStats") -> "ColumnStats":
        return ColumnStats(self.count + other.count, self.total + other.total,
                           self.total_sq + other.total_sq)

    def __sub__(self, other: "ColumnStats") -> "ColumnStats":
        return ColumnStats(self.count - other.count, self.total - other.total,
                           self.total_sq - other.total_sq)

    @property
    def mean(self) -> Number:
        with np.errstate(divide="ignore", invalid="ignore"):
            out = np.where(np.asarray(self.count) > 0,
                           np.asarray(self.total) / np.maximum(self.count, 1), 0.0)
        return float(out) if out.ndim == 0 else out

    @property
    def sse(self) -> Number:
        out = _sse(np.asarray(self.count), np.asarray(self.total), np.asarray(self.total_sq))
        return float(out) if out.ndim == 0 else out


def reduction(parent: ColumnStats, left: ColumnStats, right: ColumnStats):
    """SSE removed by splitting ``parent`` into ``left`` and ``right``.

    A split with an empty side is ineligible: ``None`` for scalar
    accumulators, ``-inf`` in that entry for array-valued ones.
    """
    red = parent.sse - (left.sse + right.sse)
    eligible = (np.asarray(left.count) > 0) & (np.asarray(right.count) > 0)
    if np.ndim(red) == 0:
        return float(red) if eligible else None
    return np.where(eligible, red, -np.inf)


def sweep_reductions(sorted_values) -> np.ndarray:
    """Reduction at every boundary of an ordered sequence of responses.

    Entry ``i`` scores the split that puts the first ``i + 1`` values on the
    left and the rest on the right. The result has ``len(sorted_values) - 1``
    entries.
    """
    v = np.asarray(sorted_values, dtype=float)
    if v.size < 2:
        return np.empty(0, dtype=float)
    parent = ColumnStats.of(v)
    left = ColumnStats.prefixes(v)
    return reduction(parent, left, parent - left)


def group_reductions(codes, values, n_groups: int) -> Tuple[np.ndarray, np.ndarray]:
    """One-vs-rest reduction for each group code in ``range(n_groups)``.

    ``codes`` outside that range only ever count on the "rest" side. Returns
    ``(reductions, group_counts)``; empty groups score ``-inf``.
    """
    parent = ColumnStats.of(values)
    inside = ColumnStats.groups(codes, values, n_groups)
    return reduction(parent, inside, parent - inside), inside.count
