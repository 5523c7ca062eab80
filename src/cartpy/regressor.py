"""CART regression tree: functional API and scikit-learn estimator.

``fit`` / ``predict`` / ``importance`` / ``dot`` are pure functions of their
inputs, so evaluation harnesses can call them repeatedly on data subsets and
aggregate the errors reproducibly. :class:`CARTRegressor` wraps the same
functions behind the scikit-learn estimator API.
"""
from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

import numpy as np
from sklearn.base import BaseEstimator, RegressorMixin
from sklearn.exceptions import NotFittedError

from . import export
from .builder import DEFAULT_MAX_DEPTH, DEFAULT_MAX_NODES, DEFAULT_MIN_SAMPLES_LEAF, TreeBuilder, check_parameters
from .exceptions import InvalidParameterError
from .schema import Schema
from .tree import RegressionTree

# ----------------------------- Functional API -----------------------------


def fit(X, y, max_depth: Optional[int] = DEFAULT_MAX_DEPTH, max_nodes: Optional[int] = DEFAULT_MAX_NODES, *,
        min_samples_leaf: int = DEFAULT_MIN_SAMPLES_LEAF,
        feature_names: Optional[Sequence[str]] = None,
        categorical_features: Optional[Iterable[int | str]] = None,
        infer_categorical: bool = True,
        int_as_categorical: bool = False,
        max_categories: int = 50,
        schema: Optional[Schema] = None,
        n_jobs: Optional[int] = None) -> RegressionTree:
    """Grow a regression tree.

    Parameters
    ----------
    X : array-like of shape (n_samples, n_features)
        Raw features; may be an object array mixing numbers and strings.
    y : array-like of shape (n_samples,)
        Response.
    max_depth : int, optional
        Deepest level a node may reach (root = 0). Unbounded by default.
    max_nodes : int, optional
        Cap on the total node count. Unbounded by default.
    min_samples_leaf : int, default=5
        Minimum rows per leaf.
    feature_names, categorical_features, infer_categorical, int_as_categorical, max_categories
        Passed to :meth:`Schema.infer` when ``schema`` is not given.
    schema : Schema, optional
        Use this schema instead of inferring one from ``X``.
    n_jobs : int, optional
        Workers for evaluating sibling nodes; does not change the tree.

    Returns
    -------
    RegressionTree

    Raises
    ------
    InvalidParameterError
        Non-positive ``max_depth``, ``max_nodes`` or ``min_samples_leaf``, or
        malformed input.
    InsufficientDataError
        Fewer than ``2 * min_samples_leaf`` rows.
    """
    check_parameters(max_depth, max_nodes, min_samples_leaf, n_jobs)
    if schema is None:
        schema = Schema.infer(X, feature_names=feature_names, categorical_features=categorical_features,
                              infer_categorical=infer_categorical, int_as_categorical=int_as_categorical,
                              max_categories=max_categories)
    Xe = schema.encode(X)
    builder = TreeBuilder(max_depth=max_depth, max_nodes=max_nodes,
                          min_samples_leaf=min_samples_leaf, n_jobs=n_jobs)
    return builder.build(Xe, np.asarray(y, dtype=float), schema)


def predict(tree: RegressionTree, x) -> float:
    """Predicted response for one feature vector."""
    return tree.predict(x)


def importance(tree: RegressionTree) -> np.ndarray:
    """Per-feature SSE reduction, aligned with ``tree.schema``."""
    return tree.importance()


def dot(tree: RegressionTree) -> str:
    """Graphviz DOT description of the tree."""
    return export.to_dot(tree)


# ----------------------------- Estimator -----------------------------

class CARTRegressor(RegressorMixin, BaseEstimator):
    r"""
    CARTRegressor(max_depth=None, max_nodes=None, min_samples_leaf=5,
                  feature_names=None, categorical_features=None,
                  infer_categorical=True, int_as_categorical=False,
                  max_categories=50, n_jobs=None)

    A CART regression tree with a scikit-learn–style API.

    **Core behavior**

    - **Split criterion**: SSE (variance) reduction. Numeric thresholds sit at
      midpoints between distinct sorted values; categorical features are split
      one level against the rest.
    - **Growth**: best-first. The pending split with the largest reduction is
      expanded next, so ``max_nodes`` keeps the most useful splits.
    - **Missing values**: missing numeric values and missing or unseen
      categories follow the right (``False``) branch, in training and in
      prediction.

    Parameters
    ----------
    max_depth : int, optional
        Maximum depth of the tree (root = 0). ``None`` means unbounded.
    max_nodes : int, optional
        Maximum total number of nodes. ``None`` means unbounded.
    min_samples_leaf : int, default=5
        Minimum number of training rows in each leaf.
    feature_names : sequence of str, optional
        Column names, used with ``categorical_features`` by name and in exports.
    categorical_features : sequence of int or str, optional
        Indices or names of categorical columns.
    infer_categorical : bool, default=True
        Treat columns holding strings or bools as categorical.
    int_as_categorical : bool, default=False
        Treat integer columns with at most ``max_categories`` values as categorical.
    max_categories : int, default=50
        Maximum number of levels kept per categorical feature.
    n_jobs : int, optional
        Parallel workers used while growing; the fitted tree is the same for
        any value.

    Attributes
    ----------
    tree_ : RegressionTree
        The fitted tree.
    schema_ : Schema
        Feature kinds and levels seen during ``fit``.
    feature_importances_ : ndarray of shape (n_features,)
        Total SSE reduction per feature.
    n_features_in_ : int
    """

    def __init__(self,
                 max_depth: Optional[int] = DEFAULT_MAX_DEPTH,
                 max_nodes: Optional[int] = DEFAULT_MAX_NODES,
                 min_samples_leaf: int = DEFAULT_MIN_SAMPLES_LEAF,
                 feature_names: Optional[List[str]] = None,
                 categorical_features: Optional[Iterable[int | str]] = None,
                 infer_categorical: bool = True,
                 int_as_categorical: bool = False,
                 max_categories: int = 50,
                 n_jobs: Optional[int] = None):
        self.max_depth = max_depth
        self.max_nodes = max_nodes
        self.min_samples_leaf = min_samples_leaf
        self.feature_names = feature_names
        self.categorical_features = categorical_features
        self.infer_categorical = infer_categorical
        self.int_as_categorical = int_as_categorical
        self.max_categories = max_categories
        self.n_jobs = n_jobs

    # ----------------------------- Public API -----------------------------

    def fit(self, X, y):
        y = np.asarray(y, dtype=float)
        X = np.asarray(X, dtype=object)
        if X.ndim != 2:
            raise InvalidParameterError("X", X.shape, reason="must be 2-dimensional")
        if X.shape[0] != y.shape[0]:
            raise InvalidParameterError("y", y.shape[0], reason=f"length must match X rows ({X.shape[0]})")
        self.tree_ = fit(X, y, self.max_depth, self.max_nodes,
                         min_samples_leaf=self.min_samples_leaf,
                         feature_names=self.feature_names,
                         categorical_features=self.categorical_features,
                         infer_categorical=self.infer_categorical,
                         int_as_categorical=self.int_as_categorical,
                         max_categories=self.max_categories,
                         n_jobs=self.n_jobs)
        self.schema_ = self.tree_.schema
        self.n_features_in_ = len(self.schema_)
        return self

    def predict(self, X) -> np.ndarray:
        return self._fitted_tree().predict_many(X)

    @property
    def feature_importances_(self) -> np.ndarray:
        return self._fitted_tree().importance()

    def _fitted_tree(self) -> RegressionTree:
        tree = getattr(self, "tree_", None)
        if tree is None:
            raise NotFittedError("Estimator not fitted. Call fit(...) first.")
        return tree

    # ----------------------------- Pretty / Rules / Graphviz -----------------------------

    def print_tree(self, feature_names: Optional[List[str]] = None) -> None:
        """Pretty-print the fitted tree to ``stdout``."""
        print(export.to_text(self._fitted_tree(), feature_names))

    def export_rules(self, feature_names: Optional[List[str]] = None) -> List[str]:
        """All decision rules of the fitted tree, one per leaf.

        Each string has the form ``"<antecedent> => value=<prediction> (N=<rows>)"``.
        """
        return export.export_rules(self._fitted_tree(), feature_names)

    def predict_rule(self, X, feature_names: Optional[List[str]] = None) -> List[str]:
        """Rule antecedent followed by each row of ``X``."""
        tree = self._fitted_tree()
        return [export.decision_path(tree, x, feature_names) for x in np.asarray(X, dtype=object)]

    def export_graphviz(self, filename: str = "cart_tree", feature_names: Optional[List[str]] = None,
                        format: str = "png") -> str:
        """Write the tree with Graphviz; see :func:`cartpy.export.export_graphviz`."""
        return export.export_graphviz(self._fitted_tree(), filename, feature_names, format)

    def to_dot(self, feature_names: Optional[List[str]] = None) -> str:
        return export.to_dot(self._fitted_tree(), feature_names)
