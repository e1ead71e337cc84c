"""
Declarative instrumentation settings for a single operation.

An InstrumentationSpec is built once when an operation is registered
(decorated, marked or proxied) and is shared read-only by every invocation
of that operation afterwards.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LogLevel(str, Enum):
    """Levels an instrumented operation can log at."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"

    @classmethod
    def parse(cls, value: "str | LogLevel") -> "LogLevel":
        """Case-insensitive lookup; accepts WARNING as an alias for WARN."""
        if isinstance(value, LogLevel):
            return value
        name = str(value).strip().upper()
        if name == "WARNING":
            name = "WARN"
        try:
            return cls[name]
        except KeyError:
            raise ValueError(f"Unknown log level: {value!r}") from None


class InstrumentationSpec(BaseModel):
    """What to capture around one operation."""

    model_config = ConfigDict(frozen=True)

    level: LogLevel = Field(default=LogLevel.WARN, description="Level the call is logged at")
    log_parameters: bool = Field(default=False, description="Include argument values")
    log_return: bool = Field(default=False, description="Include the return value")
    log_stack_trace: bool = Field(default=False, description="Append the current call stack")
    log_exception: bool = Field(default=False, description="Append the failure stack trace")
    custom_pattern: str | None = Field(
        default=None, description="Placeholder pattern replacing the default layout"
    )

    @field_validator("level", mode="before")
    @classmethod
    def _parse_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            return LogLevel.parse(value)
        return value

    @property
    def uses_custom_pattern(self) -> bool:
        return bool(self.custom_pattern)
