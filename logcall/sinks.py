"""
Log sinks the interceptor writes to.

Any object with ``is_enabled(level)`` and ``write(level, message)`` can act
as a sink. The default resolver hands out one LoggingSink per owner, backed
by the stdlib logger named after the owning class or module, so the host
application controls instrumentation output with ordinary logging config.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from logcall.config import settings
from logcall.errors import SinkError
from logcall.spec import LogLevel

logger = logging.getLogger(__name__)

TRACE = settings.trace_level_num
logging.addLevelName(TRACE, "TRACE")

_LEVEL_NUMBERS = {
    LogLevel.TRACE: TRACE,
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


def level_number(level: LogLevel) -> int:
    """Stdlib logging level for ``level``."""
    return _LEVEL_NUMBERS[LogLevel.parse(level)]


@runtime_checkable
class LogSink(Protocol):
    """Leveled destination for instrumentation messages."""

    def is_enabled(self, level: LogLevel) -> bool: ...

    def write(self, level: LogLevel, message: str) -> None: ...


SinkResolver = Callable[[str], LogSink]


class LoggingSink:
    """LogSink backed by a stdlib ``logging.Logger``."""

    def __init__(self, target: logging.Logger):
        self.logger = target

    def is_enabled(self, level: LogLevel) -> bool:
        return self.logger.isEnabledFor(level_number(level))

    def write(self, level: LogLevel, message: str) -> None:
        self.logger.log(level_number(level), message)

    def __repr__(self) -> str:
        return f"LoggingSink({self.logger.name!r})"


class LoggingSinkRegistry:
    """
    Resolves one LoggingSink per owner.

    Sinks are created on first use and reused afterwards; creation is
    guarded so concurrent first calls for the same owner share one sink.
    """

    def __init__(self, prefix: str | None = None):
        self.prefix = settings.logger_prefix if prefix is None else prefix
        self._sinks: dict[str, LoggingSink] = {}
        self._lock = threading.Lock()

    def logger_name(self, owner_name: str) -> str:
        if not self.prefix:
            return owner_name
        return f"{self.prefix.rstrip('.')}.{owner_name}"

    def __call__(self, owner_name: str) -> LoggingSink:
        if not owner_name:
            raise SinkError("Cannot resolve a sink without an owner name")
        sink = self._sinks.get(owner_name)
        if sink is not None:
            return sink
        with self._lock:
            sink = self._sinks.get(owner_name)
            if sink is None:
                sink = LoggingSink(logging.getLogger(self.logger_name(owner_name)))
                self._sinks[owner_name] = sink
                logger.debug(f"Sink created for owner '{owner_name}': {sink!r}")
        return sink

    def clear(self) -> None:
        with self._lock:
            self._sinks.clear()
