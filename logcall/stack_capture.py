"""
Stack and exception trace rendering with the engine's own frames removed.

Traces are rendered with the stdlib ``traceback`` module and then filtered
entry by entry: a frame entry is the ``File "...", line N, in func`` header
together with the indented source and caret lines below it. Entries whose
header contains one of the configured markers are dropped, everything else
(chain separators, the final exception line, frames of user code) is kept
in its original order.
"""

from __future__ import annotations

import os
import re
import traceback
from collections.abc import Iterable

from logcall.config import settings

# Modules whose frames show up between user code and the log call
ENGINE_MODULES = ("interceptor", "decorators", "factory", "formatter", "stack_capture", "sinks")

_PACKAGE = os.path.basename(os.path.dirname(os.path.abspath(__file__)))
_FRAME_HEADER = re.compile(r'^(?P<prefix>[ |]*)File "')

STACK_HEADER = "Stack (most recent call last):"
FAILURE_SUMMARY = "Method raised Exception: "


def engine_frame_markers() -> tuple[str, ...]:
    """Markers matching frame headers of the engine modules, e.g. ``logcall/interceptor.py"``."""
    return tuple(os.path.join(_PACKAGE, f"{module}.py") + '"' for module in ENGINE_MODULES)


class StackCapture:
    """Renders call stacks and failure traces without instrumentation frames."""

    def __init__(
        self,
        markers: Iterable[str] | None = None,
        extra_markers: Iterable[str] | None = None,
    ):
        base = engine_frame_markers() if markers is None else tuple(markers)
        extra = settings.stack_filters if extra_markers is None else extra_markers
        self.markers: tuple[str, ...] = (*base, *extra)

    def is_engine_frame(self, header: str) -> bool:
        return any(marker in header for marker in self.markers)

    def filter(self, trace: str) -> str:
        """Drop engine frame entries from a rendered trace."""
        kept: list[str] = []
        skip_prefix: str | None = None

        for line in trace.splitlines():
            header = _FRAME_HEADER.match(line)
            if skip_prefix is not None:
                if header is None and line.startswith(skip_prefix + "  "):
                    continue
                skip_prefix = None
            if header is not None and self.is_engine_frame(line):
                skip_prefix = header.group("prefix")
                continue
            kept.append(line)

        return "\n".join(kept)

    def capture_current(self) -> str:
        """The live call stack at the point of the call, filtered."""
        entries = traceback.format_stack()
        return self.filter(STACK_HEADER + "\n" + "".join(entries))

    def format_failure(self, failure: BaseException) -> str:
        """The failure's traceback including chained causes, filtered."""
        rendered = traceback.format_exception(type(failure), failure, failure.__traceback__)
        return self.filter("".join(rendered))

    def failure_report(self, failure: BaseException) -> str:
        """One-line failure summary followed by the filtered traceback."""
        message = str(failure) or "null"
        return f"{FAILURE_SUMMARY}{message}\n{self.format_failure(failure)}"
