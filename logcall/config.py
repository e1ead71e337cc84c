"""
Configuration management using Pydantic Settings.
Reads from environment variables.
"""

from typing import Any

from pydantic import ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings

from logcall.spec import LogLevel


class Settings(BaseSettings):
    """Engine settings."""

    model_config = ConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Level used by the front-ends when a decorator does not name one
    default_level: LogLevel = Field(default=LogLevel.WARN, alias="LOGCALL_DEFAULT_LEVEL")

    # Extra substrings identifying frames to strip from captured traces
    stack_filters: list[str] = Field(default_factory=list, alias="LOGCALL_STACK_FILTERS")

    # Sink configuration
    trace_level_num: int = Field(default=5, alias="LOGCALL_TRACE_LEVEL_NUM")
    logger_prefix: str = Field(default="", alias="LOGCALL_LOGGER_PREFIX")

    # Engine diagnostics
    diagnostics_logger: str = Field(default="logcall.engine", alias="LOGCALL_DIAGNOSTICS_LOGGER")

    @field_validator("default_level", mode="before")
    @classmethod
    def _parse_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            return LogLevel.parse(value)
        return value


# Global settings instance
settings = Settings()
