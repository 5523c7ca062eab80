import numpy as np

from cartpy.schema import CATEGORICAL, FeatureSpec, Schema
from cartpy.splitter import find_best_split


def _rows(n):
    return np.arange(n)


def test_numeric_split_uses_midpoint_between_distinct_values():
    X = np.array([[1.0], [2.0], [3.0], [10.0], [11.0], [12.0]])
    y = np.array([0.0, 0.0, 0.0, 5.0, 5.0, 5.0])
    split = find_best_split(X, y, _rows(6), Schema.numeric(1), 1)
    assert split.feature_index == 0
    assert split.split_type == "numeric"
    assert split.threshold == 6.5
    assert (split.n_left, split.n_right) == (3, 3)
    assert split.reduction == 37.5


def test_split_never_separates_equal_values():
    X = np.array([[1.0], [1.0], [1.0], [2.0]])
    y = np.array([0.0, 1.0, 2.0, 9.0])
    split = find_best_split(X, y, _rows(4), Schema.numeric(1), 1)
    assert split.threshold == 1.5
    assert split.n_left == 3


def test_min_leaf_makes_candidates_ineligible():
    X = np.array([[1.0], [2.0], [3.0], [4.0]])
    y = np.array([0.0, 0.0, 0.0, 100.0])
    split = find_best_split(X, y, _rows(4), Schema.numeric(1), 2)
    # the 3|1 cut is best but leaves one row on the right
    assert (split.n_left, split.n_right) == (2, 2)


def test_constant_feature_yields_no_split():
    X = np.ones((6, 1))
    y = np.arange(6, dtype=float)
    assert find_best_split(X, y, _rows(6), Schema.numeric(1), 1) is None


def test_constant_response_yields_no_split():
    X = np.arange(6, dtype=float).reshape(-1, 1)
    y = np.full(6, 0.1)
    assert find_best_split(X, y, _rows(6), Schema.numeric(1), 1) is None


def test_ties_go_to_first_feature():
    col = np.array([1.0, 2.0, 3.0, 4.0])
    X = np.column_stack([col, col, col])
    y = np.array([0.0, 0.0, 1.0, 1.0])
    split = find_best_split(X, y, _rows(4), Schema.numeric(3), 1)
    assert split.feature_index == 0


def test_feature_subset_is_respected():
    X = np.column_stack([[1.0, 2.0, 3.0, 4.0], [4.0, 3.0, 2.0, 1.0]])
    y = np.array([0.0, 0.0, 1.0, 1.0])
    split = find_best_split(X, y, _rows(4), Schema.numeric(2), 1, features=[1])
    assert split.feature_index == 1


def test_only_node_rows_are_scanned():
    X = np.array([[1.0], [2.0], [3.0], [4.0], [100.0]])
    y = np.array([0.0, 0.0, 1.0, 1.0, -50.0])
    split = find_best_split(X, y, np.array([0, 1, 2, 3]), Schema.numeric(1), 1)
    assert split.threshold == 2.5


def test_missing_numeric_values_stay_on_the_right():
    X = np.array([[1.0], [2.0], [np.nan], [3.0], [4.0]])
    y = np.array([0.0, 0.0, 9.0, 9.0, 9.0])
    split = find_best_split(X, y, _rows(5), Schema.numeric(1), 1)
    assert split.threshold == 2.5
    assert (split.n_left, split.n_right) == (2, 3)
    assert not split.goes_left(X[:, 0])[2]


def test_categorical_one_vs_rest():
    schema = Schema((FeatureSpec("c", CATEGORICAL, ("A", "B", "C")),))
    X = np.array([[0.0], [0.0], [1.0], [1.0], [2.0], [2.0], [-1.0]])
    y = np.array([1.0, 1.0, 10.0, 10.0, 1.0, 1.0, 1.0])
    split = find_best_split(X, y, _rows(7), schema, 1)
    assert split.split_type == "categorical"
    assert split.threshold == 1.0
    assert (split.n_left, split.n_right) == (2, 5)
    assert split.goes_left(X[:, 0]).tolist() == [False, False, True, True, False, False, False]
