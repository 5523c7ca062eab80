"""Logging utilities for cartpy.

cartpy logs through loguru and is silent by default: the ``cartpy`` logger is
disabled on import. :func:`enable_logging` adds a stderr handler filtered to
cartpy records and returns a :class:`LoggingHandle` that removes it again.

    >>> with enable_logging(level="DEBUG"):  # doctest: +SKIP
    ...     cartpy.fit(X, y)
"""
from __future__ import annotations

import contextlib
import sys
import threading
from typing import TYPE_CHECKING, ClassVar, Literal

from loguru import logger

if TYPE_CHECKING:
    from types import TracebackType

    from loguru import Record

PACKAGE_NAME: str = __name__.split(".")[0]

logger.disable(PACKAGE_NAME)

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
    "<level>{message}</level>"
)


class LoggingHandle:
    """Handle owning one loguru handler added by :func:`enable_logging`.

    When the last active handle is disabled the ``cartpy`` logger is disabled
    again.
    """

    _active_ids: ClassVar[set[int]] = set()
    _lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, handler_id: int) -> None:
        self.handler_id: int | None = handler_id
        with LoggingHandle._lock:
            LoggingHandle._active_ids.add(handler_id)

    def disable(self) -> None:
        """Remove the handler; disable cartpy logging if no handle remains."""
        with LoggingHandle._lock:
            if self.handler_id is None:
                return
            LoggingHandle._active_ids.discard(self.handler_id)
            with contextlib.suppress(ValueError):
                logger.remove(self.handler_id)
            self.handler_id = None
            if not LoggingHandle._active_ids:
                logger.disable(PACKAGE_NAME)

    def __enter__(self) -> LoggingHandle:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.disable()

    @classmethod
    def get_active_handle_count(cls) -> int:
        with cls._lock:
            return len(cls._active_ids)


def enable_logging(*, level: LogLevel = "INFO", sink=None) -> LoggingHandle:
    """Enable cartpy logging.

    Parameters
    ----------
    level : str, default="INFO"
        Minimum level. ``"INFO"`` reports one summary per fit; ``"DEBUG"``
        also reports every split.
    sink : optional
        Any loguru sink. Defaults to ``sys.stderr``.

    Returns
    -------
    LoggingHandle
        Handle whose ``disable()`` (or context exit) removes the handler.
    """
    logger.enable(PACKAGE_NAME)
    handler_id = logger.add(
        sink if sink is not None else sys.stderr,
        level=level,
        filter=_is_cartpy_record,
        format=_FORMAT,
    )
    return LoggingHandle(handler_id)


def _is_cartpy_record(record: Record) -> bool:
    name = record["name"]
    return name is not None and name.startswith(PACKAGE_NAME)
