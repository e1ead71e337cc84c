"""
Log message construction.

Two layouts exist and exactly one is used per call: the fixed default
layout, or the spec's custom pattern when it is non-empty.

Default layout
--------------
Method 'transfer' | Params: [acc-1, 250] | Return: OK | Duration: 12ms

followed by optional "Call Stack Trace:" and "Exception Stack Trace:"
sections on their own lines.

Custom patterns
---------------
Placeholders are replaced by plain text in a single pass over the pattern.
Substituted text is never scanned again, so a return value containing
"{methodName}" comes out verbatim. Unknown placeholders are left alone.

    {methodName}  operation name
    {className}   simple owner name
    {params}      all argument values, comma separated
    {param[i]}    argument value by position
    {<name>}      argument value by parameter name
    {return}      return value
    {stacktrace}  failure trace when the call failed, else the call stack
    {exception}   failure trace, only when the call failed

Built-in placeholders win over indexed ones, which win over names.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any

from logcall.errors import FormattingError
from logcall.invocation import InvocationContext
from logcall.spec import InstrumentationSpec
from logcall.stack_capture import StackCapture

NULL_TEXT = "null"

_PLACEHOLDER = re.compile(r"\{([^{}]+)\}")
_INDEXED_PARAM = re.compile(r"param\[(\d+)\]")


def display_string(value: Any) -> str:
    """Render a value for a log line; None becomes ``null``."""
    if value is None:
        return NULL_TEXT
    return str(value)


def join_parameters(values: Iterable[Any]) -> str:
    return ", ".join(display_string(value) for value in values)


class MessageFormatter:
    """Builds the single log line for an invocation."""

    def __init__(self, stack_capture: StackCapture | None = None):
        self.stack_capture = stack_capture or StackCapture()

    def format(self, spec: InstrumentationSpec, context: InvocationContext) -> str:
        """
        Build the log line for ``context`` as described by ``spec``.

        Raises:
            FormattingError: If any part of the message cannot be rendered
        """
        try:
            if spec.uses_custom_pattern:
                return self.format_custom(spec.custom_pattern, context)
            return self.format_default(spec, context)
        except FormattingError:
            raise
        except Exception as e:
            raise FormattingError(
                f"Could not build log message for '{context.operation_name}': {e}"
            ) from e

    def format_default(self, spec: InstrumentationSpec, context: InvocationContext) -> str:
        parts = [f"Method '{context.operation_name}'"]

        if spec.log_parameters and context.parameter_values:
            parts.append(f" | Params: [{join_parameters(context.parameter_values)}]")

        # A failure always wins over the return value
        if context.failed:
            parts.append(f" | Threw Exception: {type(context.failure).__name__}")
        elif spec.log_return and context.returns_value:
            parts.append(f" | Return: {display_string(context.result)}")

        parts.append(f" | Duration: {context.duration_millis}ms")

        if spec.log_stack_trace:
            parts.append("\nCall Stack Trace:\n")
            parts.append(self.stack_capture.capture_current())

        if context.failed and spec.log_exception:
            parts.append("\nException Stack Trace:\n")
            parts.append(self.stack_capture.format_failure(context.failure))

        return "".join(parts)

    def format_custom(self, pattern: str, context: InvocationContext) -> str:
        resolved: dict[str, str | None] = {}

        def substitute(match: re.Match) -> str:
            token = match.group(1)
            if token not in resolved:
                resolved[token] = self._resolve(token, context)
            value = resolved[token]
            return match.group(0) if value is None else value

        return _PLACEHOLDER.sub(substitute, pattern)

    def _resolve(self, token: str, context: InvocationContext) -> str | None:
        """Text for one placeholder, or None to leave it untouched."""
        if token == "methodName":
            return context.operation_name
        if token == "className":
            return context.owner_simple_name
        if token == "params":
            return join_parameters(context.parameter_values)
        if token == "return":
            return display_string(context.result)
        if token == "stacktrace":
            if context.failed:
                return self.stack_capture.failure_report(context.failure)
            return self.stack_capture.capture_current()
        if token == "exception":
            if context.failed:
                return self.stack_capture.failure_report(context.failure)
            return None

        values = context.parameter_values
        indexed = _INDEXED_PARAM.fullmatch(token)
        if indexed is not None:
            index = int(indexed.group(1))
            return display_string(values[index]) if index < len(values) else None

        names = context.parameter_names
        if names and token in names:
            return display_string(values[names.index(token)])
        return None
