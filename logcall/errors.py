"""
Error taxonomy for the instrumentation engine.

Only InstrumentationError ever reaches application code, and only at
registration time. Formatting and sink failures are recovered inside the
interceptor and reported on the diagnostics logger.
"""


class LogCallError(RuntimeError):
    """Base class for engine errors."""


class FormattingError(LogCallError):
    """Raised when a log message cannot be built."""


class SinkError(LogCallError):
    """Raised when a sink cannot be resolved or refuses a write."""


class InstrumentationError(LogCallError):
    """Raised when a front-end cannot instrument its target."""
