import numpy as np
from loguru import logger

import cartpy
from cartpy.logging import PACKAGE_NAME, LoggingHandle, enable_logging


def _fit_small():
    X = np.arange(20, dtype=float).reshape(-1, 1)
    return cartpy.fit(X, X[:, 0] ** 2, max_nodes=7, min_samples_leaf=2)


def test_logging_is_silent_by_default():
    captured = []
    handler_id = logger.add(captured.append, level="TRACE")
    try:
        _fit_small()
    finally:
        logger.remove(handler_id)
    assert captured == []


def test_enable_logging_reports_fit_summary_and_splits():
    captured = []
    with enable_logging(level="DEBUG", sink=captured.append):
        _fit_small()
    messages = [str(m) for m in captured]
    assert any("grew tree on 20 rows" in m for m in messages)
    assert any("split node 0" in m for m in messages)
    assert any("node budget of 7 reached" in m for m in messages)


def test_disabling_last_handle_silences_package():
    captured = []
    handle = enable_logging(sink=captured.append)
    handle.disable()
    handle.disable()
    _fit_small()
    assert captured == []
    assert LoggingHandle.get_active_handle_count() == 0
    assert PACKAGE_NAME == "cartpy"
