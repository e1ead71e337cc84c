"""
Diagnostics for the engine itself.

Why this exists
---------------
Instrumentation must stay invisible to the code it wraps. When a message
cannot be built or a sink misbehaves, the caller still gets the wrapped
operation's own result or exception; the problem is reported here instead,
on a dedicated logger the host application can route anywhere.

Example log:
[LOGCALL] formatting_failed operation=transfer owner=bank.Accounts error=FormattingError
"""

from __future__ import annotations

import logging

from logcall.config import settings
from logcall.invocation import InvocationContext

logger = logging.getLogger(settings.diagnostics_logger)


def fallback_message(context: InvocationContext, error: BaseException) -> str:
    """Minimal log line used when the real message cannot be built."""
    return (
        f"Method '{context.operation_name}' | Duration: {context.duration_millis}ms"
        f" | Log formatting failed: {type(error).__name__}"
    )


def report_formatting_failure(context: InvocationContext, error: BaseException) -> None:
    logger.warning(
        "[LOGCALL] formatting_failed operation=%s owner=%s error=%s",
        context.operation_name,
        context.owner_name,
        type(error).__name__,
        exc_info=error,
    )


def report_sink_failure(owner_name: str, stage: str, error: BaseException) -> None:
    """
    Record a sink that could not be resolved, queried or written to.

    ``stage`` is one of ``resolve``, ``gate`` or ``write``.
    """
    logger.error(
        "[LOGCALL] sink_failed stage=%s owner=%s error=%s: %s",
        stage,
        owner_name,
        type(error).__name__,
        error,
    )
