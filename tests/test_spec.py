"""
Tests for instrumentation specs and engine settings.
"""

import pytest
from pydantic import ValidationError

from logcall.config import Settings
from logcall.spec import InstrumentationSpec, LogLevel


class TestInstrumentationSpec:
    """Test spec defaults and immutability."""

    def test_defaults(self):
        """A bare spec logs at WARN with nothing optional captured."""
        spec = InstrumentationSpec()

        assert spec.level == LogLevel.WARN
        assert spec.log_parameters is False
        assert spec.log_return is False
        assert spec.log_stack_trace is False
        assert spec.log_exception is False
        assert spec.custom_pattern is None
        assert spec.uses_custom_pattern is False

    def test_empty_pattern_uses_default_layout(self):
        """An empty pattern does not switch to custom mode."""
        assert InstrumentationSpec(custom_pattern="").uses_custom_pattern is False
        assert InstrumentationSpec(custom_pattern="{methodName}").uses_custom_pattern is True

    def test_spec_is_immutable(self):
        """Specs cannot be changed after creation."""
        spec = InstrumentationSpec()

        with pytest.raises(ValidationError):
            spec.level = LogLevel.ERROR

    def test_level_parsed_case_insensitively(self):
        """Levels given as strings are normalised."""
        assert InstrumentationSpec(level="info").level == LogLevel.INFO
        assert InstrumentationSpec(level="Warning").level == LogLevel.WARN

    def test_unknown_level_rejected(self):
        """Unknown level names are a validation error."""
        with pytest.raises(ValidationError):
            InstrumentationSpec(level="verbose")


class TestLogLevel:
    """Test level parsing."""

    def test_parse_accepts_members(self):
        assert LogLevel.parse(LogLevel.DEBUG) is LogLevel.DEBUG

    def test_parse_rejects_unknown(self):
        with pytest.raises(ValueError, match="Unknown log level"):
            LogLevel.parse("loud")


class TestSettings:
    """Test environment-driven settings."""

    def test_defaults(self, monkeypatch):
        """Without environment overrides the documented defaults apply."""
        for name in (
            "LOGCALL_DEFAULT_LEVEL",
            "LOGCALL_STACK_FILTERS",
            "LOGCALL_TRACE_LEVEL_NUM",
            "LOGCALL_LOGGER_PREFIX",
            "LOGCALL_DIAGNOSTICS_LOGGER",
        ):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.default_level == LogLevel.WARN
        assert settings.stack_filters == []
        assert settings.trace_level_num == 5
        assert settings.logger_prefix == ""
        assert settings.diagnostics_logger == "logcall.engine"

    def test_environment_overrides(self, monkeypatch):
        """Environment variables override the defaults."""
        monkeypatch.setenv("LOGCALL_DEFAULT_LEVEL", "debug")
        monkeypatch.setenv("LOGCALL_STACK_FILTERS", '["vendor/shim.py"]')
        monkeypatch.setenv("LOGCALL_LOGGER_PREFIX", "calls")

        settings = Settings(_env_file=None)

        assert settings.default_level == LogLevel.DEBUG
        assert settings.stack_filters == ["vendor/shim.py"]
        assert settings.logger_prefix == "calls"
