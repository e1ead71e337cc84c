"""
Pytest configuration and fixtures.
Shared sink stubs and interceptors.
"""

import pytest

from logcall.factory import default_factory
from logcall.interceptor import Interceptor, set_interceptor
from logcall.spec import LogLevel


class RecordingSink:
    """Sink stub that records gate checks and written messages."""

    def __init__(self, enabled: bool = True, min_level: LogLevel | None = None):
        self.enabled = enabled
        self.min_level = min_level
        self.gate_checks: list[LogLevel] = []
        self.writes: list[tuple[LogLevel, str]] = []

    def is_enabled(self, level: LogLevel) -> bool:
        self.gate_checks.append(level)
        if self.min_level is not None:
            order = list(LogLevel)
            return order.index(level) >= order.index(self.min_level)
        return self.enabled

    def write(self, level: LogLevel, message: str) -> None:
        self.writes.append((level, message))

    @property
    def messages(self) -> list[str]:
        return [message for _, message in self.writes]


@pytest.fixture
def sink():
    """Sink with every level enabled."""
    return RecordingSink()


@pytest.fixture
def disabled_sink():
    """Sink with every level disabled."""
    return RecordingSink(enabled=False)


@pytest.fixture
def interceptor(sink):
    """Interceptor writing every owner's messages to ``sink``, with a frozen clock."""
    return Interceptor(sink_resolver=lambda owner_name: sink, clock=lambda: 0.0)


@pytest.fixture
def use_interceptor(interceptor):
    """Install ``interceptor`` as the global one for the duration of a test."""
    set_interceptor(interceptor)
    default_factory.clear()
    yield interceptor
    set_interceptor(None)
    default_factory.clear()
