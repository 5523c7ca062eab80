"""Errors raised by cartpy.

Every error subclasses both :class:`CartError` and :class:`ValueError`, so
callers that already catch ``ValueError`` around estimator input keep working.

- :class:`InvalidParameterError`: a stopping parameter or input shape is
  rejected before any training work starts.
- :class:`InsufficientDataError`: too few rows to split the root.
- :class:`SchemaMismatchError`: prediction input does not match the schema
  the tree was trained on. ``InputShapeError`` is the same class.
"""
from __future__ import annotations

from typing import Any


class CartError(ValueError):
    """Base class for all cartpy errors."""


class InvalidParameterError(CartError):
    """Raised when a parameter is outside its valid range.

    Attributes
    ----------
    name : str
        Parameter name.
    value : Any
        Rejected value.
    """

    def __init__(self, name: str, value: Any, reason: str = "must be a positive integer"):
        self.name = name
        self.value = value
        super().__init__(f"{name} {reason}, got {value!r}")


class InsufficientDataError(CartError):
    """Raised when the training set cannot hold two leaves of the minimum size."""

    def __init__(self, n_rows: int, min_samples_leaf: int):
        self.n_rows = n_rows
        self.min_samples_leaf = min_samples_leaf
        super().__init__(
            f"need at least {2 * min_samples_leaf} rows for min_samples_leaf={min_samples_leaf}, "
            f"got {n_rows}"
        )


class SchemaMismatchError(CartError):
    """Raised when a feature vector does not match the trained schema.

    Attributes
    ----------
    expected : Any
        What the schema requires (feature count or kind).
    received : Any
        What was passed.
    """

    def __init__(self, message: str, *, expected: Any = None, received: Any = None):
        self.expected = expected
        self.received = received
        super().__init__(message)


InputShapeError = SchemaMismatchError
