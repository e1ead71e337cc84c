"""
Per-operation call sites and per-call invocation records.

A CallSite is computed once when an operation is registered. An
InvocationContext is created by the interceptor for a single active call
and dropped once its log line has been written.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

_RECEIVER_NAMES = ("self", "cls")
_LOCALS = "<locals>"


class InvocationState(Enum):
    """
    Interception states of one call.

    GATE_CHECK and SKIPPED name the steps before a context exists; a
    context itself starts at IDLE and is only created for logged calls.
    """

    IDLE = "idle"
    GATE_CHECK = "gate_check"
    SKIPPED = "skipped"  # Level disabled, call ran untouched
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    FORMATTING = "formatting"
    EMITTED = "emitted"


def _returns_value(annotation: Any) -> bool:
    # "-> None" is the only way a Python callable declares it returns nothing
    return not (annotation is None or annotation is type(None) or annotation == "None")


def _enclosing(qualname: str) -> list[str]:
    """Enclosing scopes of a qualname, dropping anything up to the last ``<locals>``."""
    scopes = qualname.split(".")[:-1]
    if _LOCALS in scopes:
        scopes = scopes[len(scopes) - scopes[::-1].index(_LOCALS):]
    return scopes


def owner_of(func: Callable, owner: type | None = None) -> str:
    """Qualified name of the type (or module) that declares ``func``."""
    if owner is not None:
        scopes = [*_enclosing(owner.__qualname__), owner.__name__]
        return f"{owner.__module__}.{'.'.join(scopes)}"
    module = getattr(func, "__module__", None) or "__main__"
    scopes = _enclosing(getattr(func, "__qualname__", ""))
    if scopes:
        return f"{module}.{'.'.join(scopes)}"
    return module


def declared_in_class(func: Callable) -> bool:
    """Whether ``func`` was defined in a class body."""
    qualname = getattr(func, "__qualname__", "")
    scopes = qualname.split(".")[:-1]
    return bool(scopes) and scopes[-1] != _LOCALS


@dataclass(frozen=True)
class CallSite:
    """Static description of an instrumented operation."""

    operation_name: str
    owner_name: str
    parameter_names: tuple[str, ...] | None = None
    returns_value: bool = True
    signature: inspect.Signature | None = None
    bound_method: bool = False

    @classmethod
    def for_callable(
        cls,
        func: Callable,
        owner: type | None = None,
        bound_method: bool | None = None,
    ) -> CallSite:
        """
        Build a call site by inspecting ``func``.

        Args:
            func: The undecorated operation
            owner: Declaring class, when known to the front-end
            bound_method: Whether the first positional argument is the
                receiver. When omitted, only functions defined in a class
                body whose first parameter is ``self`` or ``cls`` count.
        """
        try:
            signature = inspect.signature(func)
        except (TypeError, ValueError):
            signature = None

        if signature is None:
            return cls(
                operation_name=getattr(func, "__name__", repr(func)),
                owner_name=owner_of(func, owner),
                bound_method=bool(bound_method),
            )

        params = list(signature.parameters.values())
        if bound_method is None:
            bound_method = bool(params) and declared_in_class(func) and (
                params[0].name in _RECEIVER_NAMES
                and params[0].kind is inspect.Parameter.POSITIONAL_OR_KEYWORD
            )
        if bound_method:
            params = params[1:]

        return cls(
            operation_name=func.__name__,
            owner_name=owner_of(func, owner),
            parameter_names=tuple(p.name for p in params),
            returns_value=_returns_value(signature.return_annotation),
            signature=signature,
            bound_method=bound_method,
        )

    @property
    def owner_simple_name(self) -> str:
        return self.owner_name.rsplit(".", 1)[-1]

    def describe(
        self, args: Sequence[Any], kwargs: Mapping[str, Any] | None = None
    ) -> tuple[list[str] | None, list[Any]]:
        """
        Turn raw call arguments into parallel name/value lists.

        The receiver is dropped for methods. ``*args`` items are named
        ``args[i]`` and ``**kwargs`` items by their key. Names are None when
        the arguments cannot be matched against the signature.
        """
        kwargs = kwargs or {}
        positional = list(args[1:] if self.bound_method else args)

        if self.signature is not None:
            try:
                bound = self.signature.bind(*args, **kwargs)
            except TypeError:
                return None, [*positional, *kwargs.values()]
            bound.apply_defaults()

            names: list[str] = []
            values: list[Any] = []
            parameters = self.signature.parameters
            for index, (name, value) in enumerate(bound.arguments.items()):
                if index == 0 and self.bound_method:
                    continue
                kind = parameters[name].kind
                if kind is inspect.Parameter.VAR_POSITIONAL:
                    for i, item in enumerate(value):
                        names.append(f"{name}[{i}]")
                        values.append(item)
                elif kind is inspect.Parameter.VAR_KEYWORD:
                    names.extend(value)
                    values.extend(value.values())
                else:
                    names.append(name)
                    values.append(value)
            return names, values

        values = [*positional, *kwargs.values()]
        if self.parameter_names is None:
            return None, values
        names = [*self.parameter_names[: len(positional)], *kwargs]
        if len(names) != len(values):
            return None, values
        return names, values


@dataclass
class InvocationContext:
    """Timing, arguments and outcome of one active call."""

    operation_name: str
    owner_name: str
    parameter_names: list[str] | None = None
    parameter_values: list[Any] = field(default_factory=list)
    returns_value: bool = True
    start_time: float = 0.0
    result: Any = None
    failure: BaseException | None = None
    duration_millis: int = 0
    state: InvocationState = InvocationState.IDLE

    @classmethod
    def for_call(
        cls, site: CallSite, args: Sequence[Any], kwargs: Mapping[str, Any] | None = None
    ) -> InvocationContext:
        names, values = site.describe(args, kwargs)
        return cls(
            operation_name=site.operation_name,
            owner_name=site.owner_name,
            parameter_names=names,
            parameter_values=values,
            returns_value=site.returns_value,
        )

    @property
    def owner_simple_name(self) -> str:
        return self.owner_name.rsplit(".", 1)[-1]

    @property
    def failed(self) -> bool:
        return self.failure is not None

    def begin(self, now: float) -> None:
        self.start_time = now
        self.state = InvocationState.RUNNING

    def complete(self, result: Any) -> None:
        self.result = result
        self.state = InvocationState.COMPLETED

    def fail(self, failure: BaseException) -> None:
        self.failure = failure
        self.result = None
        self.state = InvocationState.FAILED

    def finish(self, now: float) -> None:
        """Stop the clock and move on to message building."""
        self.duration_millis = max(0, int((now - self.start_time) * 1000))
        self.state = InvocationState.FORMATTING
