"""Cross-validated error of a tree-fitting procedure.

These helpers only call a ``fitter(X_train, y_train) -> RegressionTree`` and
the tree's ``predict_many``; they rely on fitting being a pure function of
its inputs. Folds are independent and run on a joblib thread pool, so the
fitter may be any callable, lambdas included.
"""
from __future__ import annotations

from typing import Callable, Optional

import numpy as np
from joblib import Parallel, delayed
from sklearn.metrics import mean_squared_error
from sklearn.model_selection import KFold, LeaveOneOut

from .tree import RegressionTree

Fitter = Callable[[np.ndarray, np.ndarray], RegressionTree]


def rmse(y_true, y_pred) -> float:
    return float(np.sqrt(mean_squared_error(y_true, y_pred)))


def _fold_predictions(fitter: Fitter, X: np.ndarray, y: np.ndarray, train, test) -> np.ndarray:
    tree = fitter(X[train], y[train])
    return tree.predict_many(X[test])


def _out_of_fold(fitter: Fitter, X, y, splitter, n_jobs: Optional[int]) -> np.ndarray:
    arr = np.asarray(X)
    # only mixed or string input needs the object path
    X = arr if arr.dtype.kind in "biuf" else np.asarray(X, dtype=object)
    y = np.asarray(y, dtype=float)
    folds = list(splitter.split(X))
    preds = Parallel(n_jobs=n_jobs, prefer="threads")(
        delayed(_fold_predictions)(fitter, X, y, train, test) for train, test in folds
    )
    out = np.empty_like(y)
    for (_, test), p in zip(folds, preds):
        out[test] = p
    return out


def cross_validate(X, y, k: int, fitter: Fitter, n_jobs: Optional[int] = None) -> float:
    """RMSE of out-of-fold predictions over ``k`` contiguous folds (no shuffling)."""
    y = np.asarray(y, dtype=float)
    return rmse(y, _out_of_fold(fitter, X, y, KFold(n_splits=k), n_jobs))


def loocv(X, y, fitter: Fitter, n_jobs: Optional[int] = None) -> float:
    """RMSE of leave-one-out predictions."""
    y = np.asarray(y, dtype=float)
    return rmse(y, _out_of_fold(fitter, X, y, LeaveOneOut(), n_jobs))
