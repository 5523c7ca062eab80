"""Feature schema: column kinds, categorical levels and input encoding.

Raw input may be any 2-D array-like, including ``dtype=object`` arrays mixing
numbers, strings and ``None``. The schema turns it into the ``float64``
matrix the builder works on:

- numeric columns are cast to float; ``None``/``NaN`` become ``NaN``;
- categorical columns are replaced by the index of the level in
  ``FeatureSpec.levels``; missing and unseen values become ``-1``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .exceptions import InvalidParameterError, SchemaMismatchError

NUMERIC = "numeric"
CATEGORICAL = "categorical"

MISSING_CODE = -1.0


def _isnan_scalar(v: Any) -> bool:
    if v is None:
        return True
    try:
        return bool(np.isnan(v))
    except (TypeError, ValueError):
        return False


@dataclass(frozen=True)
class FeatureSpec:
    """Metadata for one input column."""

    name: str
    kind: str = NUMERIC
    levels: Tuple[Any, ...] = ()
    _codes: Dict[Any, int] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        if self.kind not in (NUMERIC, CATEGORICAL):
            raise InvalidParameterError("kind", self.kind, reason="must be 'numeric' or 'categorical'")
        self._codes.update({lv: i for i, lv in enumerate(self.levels)})

    @property
    def is_categorical(self) -> bool:
        return self.kind == CATEGORICAL

    def code(self, value: Any) -> float:
        if _isnan_scalar(value):
            return MISSING_CODE
        try:
            return float(self._codes.get(value, MISSING_CODE))
        except TypeError:  # unhashable
            return MISSING_CODE

    def level(self, code: float) -> Any:
        return self.levels[int(code)]

    def encode_column(self, col: Sequence[Any]) -> np.ndarray:
        if self.is_categorical:
            return np.array([self.code(v) for v in col], dtype=float)
        col = np.asarray(col)
        if col.dtype != object and np.issubdtype(col.dtype, np.number):
            return col.astype(float)
        out = np.empty(len(col), dtype=float)
        for i, v in enumerate(col):
            if _isnan_scalar(v):
                out[i] = np.nan
                continue
            try:
                out[i] = float(v)
            except (TypeError, ValueError):
                raise SchemaMismatchError(
                    f"feature {self.name!r} is numeric but got {v!r}",
                    expected=NUMERIC, received=type(v).__name__,
                ) from None
        return out


@dataclass(frozen=True)
class Schema:
    """Ordered feature descriptors a tree is trained against."""

    features: Tuple[FeatureSpec, ...]

    def __len__(self) -> int:
        return len(self.features)

    def __iter__(self):
        return iter(self.features)

    def __getitem__(self, j: int) -> FeatureSpec:
        return self.features[j]

    @property
    def names(self) -> List[str]:
        return [f.name for f in self.features]

    @classmethod
    def numeric(cls, n_features: int, feature_names: Optional[Sequence[str]] = None) -> "Schema":
        names = list(feature_names) if feature_names is not None else [f"X[{j}]" for j in range(n_features)]
        return cls(tuple(FeatureSpec(name) for name in names))

    @classmethod
    def infer(cls, X, feature_names: Optional[Sequence[str]] = None,
              categorical_features: Optional[Iterable[int | str]] = None,
              infer_categorical: bool = True, int_as_categorical: bool = False,
              max_categories: int = 50) -> "Schema":
        """Build a schema from raw training input.

        Categorical columns are those listed in ``categorical_features`` (by
        index, or by name when ``feature_names`` is given), plus, when
        ``infer_categorical`` is set, object columns holding strings or bools
        and, with ``int_as_categorical``, integer columns with at most
        ``max_categories`` distinct values. Levels are kept in first-seen
        order, capped at ``max_categories``.
        """
        arr = np.asarray(X)
        numeric_input = arr.dtype.kind in "iuf"
        X = arr if numeric_input else np.asarray(X, dtype=object)
        if X.ndim != 2:
            raise InvalidParameterError("X", X.shape, reason="must be 2-dimensional")
        m = X.shape[1]
        if feature_names is not None and len(feature_names) != m:
            raise InvalidParameterError("feature_names", len(feature_names),
                                        reason=f"length must match X.shape[1]={m}")
        names = list(feature_names) if feature_names is not None else [f"X[{j}]" for j in range(m)]

        is_cat = np.zeros(m, dtype=bool)
        if categorical_features is not None:
            seq = list(categorical_features)
            if seq and isinstance(seq[0], str):
                if feature_names is None:
                    raise InvalidParameterError(
                        "feature_names", None,
                        reason="must be provided when categorical_features are given by name")
                name_to_idx = {n: i for i, n in enumerate(names)}
                for name in seq:
                    if name not in name_to_idx:
                        raise InvalidParameterError("categorical_features", name, reason="names an unknown feature")
                    is_cat[name_to_idx[name]] = True
            else:
                for j in seq:
                    if not 0 <= int(j) < m:
                        raise InvalidParameterError("categorical_features", j, reason=f"must index one of {m} features")
                    is_cat[int(j)] = True
        if infer_categorical:
            for j in range(m):
                if is_cat[j]:
                    continue
                if numeric_input:
                    if int_as_categorical and X.dtype.kind in "iu" and X.shape[0] > 0:
                        is_cat[j] = np.unique(X[:, j]).size <= max_categories
                    continue
                known = [v for v in X[:, j] if not _isnan_scalar(v)]
                if any(isinstance(v, (str, bool, np.str_, np.bool_)) for v in known):
                    is_cat[j] = True
                elif int_as_categorical and known and all(isinstance(v, (int, np.integer)) for v in known):
                    if len(set(known)) <= max_categories:
                        is_cat[j] = True

        specs = []
        for j in range(m):
            if not is_cat[j]:
                specs.append(FeatureSpec(names[j]))
                continue
            uniq: List[Any] = []
            seen = set()
            for v in X[:, j].tolist():
                if _isnan_scalar(v) or v in seen:
                    continue
                seen.add(v)
                uniq.append(v)
                if len(uniq) >= max_categories:
                    break
            specs.append(FeatureSpec(names[j], CATEGORICAL, tuple(uniq)))
        return cls(tuple(specs))

    def encode(self, X) -> np.ndarray:
        """Encode a 2-D raw input into the float matrix trees operate on."""
        arr = np.asarray(X)
        # mixed python lists would otherwise be coerced to strings
        X = arr if arr.dtype.kind in "biuf" else np.asarray(X, dtype=object)
        if X.ndim == 1:
            X = X.reshape(1, -1)
        if X.ndim != 2 or X.shape[1] != len(self):
            raise SchemaMismatchError(
                f"expected {len(self)} features, got input of shape {X.shape}",
                expected=len(self), received=X.shape[-1] if X.ndim else 0,
            )
        if X.shape[0] == 0:
            return np.empty((0, len(self)), dtype=float)
        if X.dtype != object and not any(f.is_categorical for f in self.features):
            return X.astype(float)
        return np.column_stack([spec.encode_column(X[:, j]) for j, spec in enumerate(self.features)])

    def encode_row(self, x) -> np.ndarray:
        x = np.asarray(x, dtype=object)
        if x.ndim != 1:
            raise SchemaMismatchError(
                f"expected a single feature vector, got shape {x.shape}",
                expected=(len(self),), received=x.shape,
            )
        return self.encode(x.reshape(1, -1))[0]
