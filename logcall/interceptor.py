"""
Interception state machine for instrumented calls.
Decides whether a call is logged, times it, captures its outcome and hands
the finished record to the formatter and the sink.
"""

import logging
import time
from collections.abc import Awaitable, Callable, Generator, Mapping, Sequence
from typing import Any

from logcall.formatter import MessageFormatter
from logcall.invocation import CallSite, InvocationContext, InvocationState
from logcall.observability import (
    fallback_message,
    report_formatting_failure,
    report_sink_failure,
)
from logcall.sinks import LoggingSinkRegistry, LogSink, SinkResolver
from logcall.spec import InstrumentationSpec

logger = logging.getLogger(__name__)


class Interceptor:
    """
    Orchestrates one instrumented invocation at a time.

    States (per call):
    - IDLE -> GATE_CHECK: the sink for the owner is resolved
    - GATE_CHECK -> SKIPPED: level disabled, the call runs untouched
    - GATE_CHECK -> RUNNING: level enabled, the clock starts
    - RUNNING -> COMPLETED | FAILED: outcome captured
    - COMPLETED | FAILED -> FORMATTING -> EMITTED: one line written

    The wrapped call's result or exception always reaches the caller
    unchanged. Formatting and sink problems are reported on the
    diagnostics logger and never raised.
    """

    def __init__(
        self,
        sink_resolver: SinkResolver | None = None,
        formatter: MessageFormatter | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        """
        Initialize interceptor.

        Args:
            sink_resolver: Maps an owner name to its sink. Defaults to one
                stdlib logger per owner.
            formatter: Message builder
            clock: Monotonic clock in seconds
        """
        self.sink_resolver = sink_resolver or LoggingSinkRegistry()
        self.formatter = formatter or MessageFormatter()
        self.clock = clock

    def _gate(self, spec: InstrumentationSpec, owner_name: str) -> LogSink | None:
        """Return the sink when the call must be logged, None otherwise."""
        try:
            sink = self.sink_resolver(owner_name)
        except Exception as e:
            report_sink_failure(owner_name, "resolve", e)
            return None

        try:
            enabled = sink.is_enabled(spec.level)
        except Exception as e:
            report_sink_failure(owner_name, "gate", e)
            return None

        return sink if enabled else None

    def is_active(self, spec: InstrumentationSpec, owner_name: str) -> bool:
        """Whether a call described by ``spec`` on ``owner_name`` would be logged."""
        return self._gate(spec, owner_name) is not None

    def _open(
        self, site: CallSite, args: Sequence[Any], kwargs: Mapping[str, Any] | None
    ) -> InvocationContext:
        try:
            context = InvocationContext.for_call(site, args, kwargs)
        except Exception as e:
            logger.warning(f"Could not describe arguments of '{site.operation_name}': {e}")
            context = InvocationContext(
                operation_name=site.operation_name,
                owner_name=site.owner_name,
                returns_value=site.returns_value,
            )
        context.begin(self.clock())
        return context

    def intercept(
        self,
        spec: InstrumentationSpec,
        proceed: Callable[[], Any],
        site: CallSite,
        args: Sequence[Any] = (),
        kwargs: Mapping[str, Any] | None = None,
    ) -> Any:
        """
        Run ``proceed`` under instrumentation.

        Args:
            spec: What to capture
            proceed: Zero-argument callable running the real operation
            site: Static description of the operation
            args, kwargs: Raw call arguments, only inspected when logging

        Returns:
            Whatever ``proceed`` returned

        Raises:
            BaseException: Whatever ``proceed`` raised, unchanged
        """
        sink = self._gate(spec, site.owner_name)
        if sink is None:
            return proceed()

        context = self._open(site, args, kwargs)
        try:
            result = proceed()
            context.complete(result)
            return result
        except BaseException as e:
            context.fail(e)
            raise
        finally:
            self._emit(spec, sink, context)

    async def intercept_async(
        self,
        spec: InstrumentationSpec,
        proceed: Callable[[], Awaitable[Any]],
        site: CallSite,
        args: Sequence[Any] = (),
        kwargs: Mapping[str, Any] | None = None,
    ) -> Any:
        """Coroutine variant of ``intercept``; cancellation is logged as a failure."""
        sink = self._gate(spec, site.owner_name)
        if sink is None:
            return await proceed()

        context = self._open(site, args, kwargs)
        try:
            result = await proceed()
            context.complete(result)
            return result
        except BaseException as e:
            context.fail(e)
            raise
        finally:
            self._emit(spec, sink, context)

    def intercept_generator(
        self,
        spec: InstrumentationSpec,
        proceed: Callable[[], Generator],
        site: CallSite,
        args: Sequence[Any] = (),
        kwargs: Mapping[str, Any] | None = None,
    ) -> Generator:
        """
        Generator variant of ``intercept``.

        The gate check and the clock start at the first ``next()``. The line
        is written when the generator returns, fails or is closed early; the
        generator's return value is the logged result.
        """
        sink = self._gate(spec, site.owner_name)
        if sink is None:
            return (yield from proceed())

        context = self._open(site, args, kwargs)
        try:
            result = yield from proceed()
            context.complete(result)
            return result
        except GeneratorExit:
            # Closed by the consumer before exhaustion
            context.complete(None)
            raise
        except BaseException as e:
            context.fail(e)
            raise
        finally:
            self._emit(spec, sink, context)

    def _emit(self, spec: InstrumentationSpec, sink: LogSink, context: InvocationContext) -> None:
        context.finish(self.clock())

        try:
            message = self.formatter.format(spec, context)
        except Exception as e:
            report_formatting_failure(context, e)
            message = fallback_message(context, e)

        try:
            sink.write(spec.level, message)
        except Exception as e:
            report_sink_failure(context.owner_name, "write", e)
            return

        context.state = InvocationState.EMITTED


# Global interceptor used by the front-ends
default_interceptor = None


def get_interceptor() -> Interceptor:
    """Get or create global interceptor instance."""
    global default_interceptor
    if default_interceptor is None:
        default_interceptor = Interceptor()
    return default_interceptor


def set_interceptor(interceptor: Interceptor | None) -> None:
    """Replace the global interceptor; None restores a fresh default on next use."""
    global default_interceptor
    default_interceptor = interceptor
