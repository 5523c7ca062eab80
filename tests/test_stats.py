import numpy as np
import pytest

from cartpy.stats import ColumnStats, centered, group_reductions, reduction, sweep_reductions


def _sse(v):
    v = np.asarray(v, dtype=float)
    return float(((v - v.mean()) ** 2).sum()) if v.size else 0.0


def test_column_stats_of_matches_direct_sse():
    v = np.array([1.0, 2.0, 4.0, 7.0])
    s = ColumnStats.of(v)
    assert s.count == 4
    assert s.mean == pytest.approx(3.5)
    assert s.sse == pytest.approx(_sse(v))


def test_prefixes_sweep_rows_from_right_to_left():
    v = np.array([3.0, -1.0, 2.5, 8.0])
    parent = ColumnStats.of(v)
    left = ColumnStats.prefixes(v)
    right = parent - left
    assert left.count.tolist() == [1.0, 2.0, 3.0]
    for i in range(3):
        assert left.sse[i] == pytest.approx(_sse(v[:i + 1]))
        assert right.sse[i] == pytest.approx(_sse(v[i + 1:]))
        assert (left + right).total[i] == pytest.approx(parent.total)


def test_groups_leave_out_unknown_codes():
    s = ColumnStats.groups(np.array([0, 1, 1, -1, 5]), np.array([1.0, 2.0, 4.0, 9.0, 9.0]), 3)
    assert s.count.tolist() == [1.0, 2.0, 0.0]
    assert s.total.tolist() == [1.0, 6.0, 0.0]
    assert s.sse.tolist() == pytest.approx([0.0, 2.0, 0.0])
    assert s.mean.tolist() == pytest.approx([1.0, 3.0, 0.0])


def test_empty_stats_have_zero_sse_and_mean():
    s = ColumnStats()
    assert s.sse == 0.0
    assert s.mean == 0.0


def test_reduction_is_ineligible_when_a_side_is_empty():
    parent = ColumnStats.of([1.0, 2.0])
    assert reduction(parent, ColumnStats(), parent) is None
    r = reduction(parent, ColumnStats.of([1.0]), ColumnStats.of([2.0]))
    assert r == pytest.approx(0.5)


def test_sweep_matches_brute_force():
    rng = np.random.default_rng(0)
    v = rng.normal(size=12)
    red = sweep_reductions(v)
    assert red.shape == (11,)
    for i in range(11):
        expected = _sse(v) - (_sse(v[:i + 1]) + _sse(v[i + 1:]))
        assert red[i] == pytest.approx(expected, abs=1e-10)


def test_sweep_of_short_sequence_is_empty():
    assert sweep_reductions(np.array([1.0])).size == 0


def test_group_reductions_one_vs_rest():
    codes = np.array([0, 0, 1, 1, 2, -1])
    vals = np.array([5.0, 5.0, 0.0, 1.0, 0.0, 0.0])
    red, counts = group_reductions(codes, vals, 3)
    assert counts.tolist() == [2.0, 2.0, 1.0]
    for k in range(3):
        inside = vals[codes == k]
        outside = vals[codes != k]
        assert red[k] == pytest.approx(_sse(vals) - _sse(inside) - _sse(outside))
    assert int(np.argmax(red)) == 0


def test_empty_group_is_ineligible():
    red, counts = group_reductions(np.array([0, 0, 1]), np.array([1.0, 2.0, 3.0]), 3)
    assert counts[2] == 0
    assert red[2] == -np.inf


def test_centered_rescales_to_unit_deviation():
    v = np.array([0.0, 0.0, 4e200, 4e200])
    u, scale = centered(v)
    assert scale == 2e200
    assert u.tolist() == [-1.0, -1.0, 1.0, 1.0]
    assert centered(np.full(3, 5.0))[1] == 1.0


def test_sweep_survives_responses_whose_squares_overflow():
    v = np.where(np.arange(20) < 10, 0.0, 3e153)
    u, scale = centered(v)
    red = sweep_reductions(u)
    assert np.isfinite(red).all()
    assert int(np.argmax(red)) == 9
    assert red[9] * scale * scale == pytest.approx(20 * 1.5e153 ** 2)
