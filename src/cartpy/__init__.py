# cartpy/__init__.py
"""
cartpy: CART regression trees in Python (scikit-learn style).

Exports:
    - fit, predict, importance, dot
    - CARTRegressor
    - RegressionTree, TreeNode, Schema, FeatureSpec
    - error classes
"""
from .logging import enable_logging
from .exceptions import (
    CartError,
    InputShapeError,
    InsufficientDataError,
    InvalidParameterError,
    SchemaMismatchError,
)
from .schema import FeatureSpec, Schema
from .tree import RegressionTree, TreeNode
from .regressor import CARTRegressor, dot, fit, importance, predict

__all__ = [
    "CARTRegressor",
    "CartError",
    "FeatureSpec",
    "InputShapeError",
    "InsufficientDataError",
    "InvalidParameterError",
    "RegressionTree",
    "Schema",
    "SchemaMismatchError",
    "TreeNode",
    "dot",
    "enable_logging",
    "fit",
    "importance",
    "predict",
]
__version__ = "0.1.0"
