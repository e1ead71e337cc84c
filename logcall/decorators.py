"""
Decorator front-end.

    @log_call(level=LogLevel.INFO, log_parameters=True, log_return=True)
    def transfer(source, target, amount):
        ...

``log_call`` wraps the function immediately. ``log_call_spec`` only
attaches the spec and leaves wrapping to ``logcall.factory`` (proxy classes
or in-place weaving).
"""

import inspect
from collections.abc import Callable
from functools import partial, wraps
from typing import Any

from logcall.config import settings
from logcall.interceptor import Interceptor, get_interceptor
from logcall.invocation import CallSite
from logcall.spec import InstrumentationSpec, LogLevel

SPEC_ATTRIBUTE = "__logcall_spec__"
WRAPPED_ATTRIBUTE = "__logcall_wrapped__"


def build_spec(
    level: LogLevel | str | None = None,
    log_parameters: bool = False,
    log_return: bool = False,
    log_stack_trace: bool = False,
    log_exception: bool = False,
    custom_pattern: str | None = None,
) -> InstrumentationSpec:
    """Create a spec, falling back to the configured default level."""
    return InstrumentationSpec(
        level=settings.default_level if level is None else level,
        log_parameters=log_parameters,
        log_return=log_return,
        log_stack_trace=log_stack_trace,
        log_exception=log_exception,
        custom_pattern=custom_pattern,
    )


def spec_of(target: Any) -> InstrumentationSpec | None:
    """Spec attached to a function, static method or class method, if any."""
    if isinstance(target, (staticmethod, classmethod)):
        target = target.__func__
    return getattr(target, SPEC_ATTRIBUTE, None)


def is_instrumented(target: Any) -> bool:
    if isinstance(target, (staticmethod, classmethod)):
        target = target.__func__
    return bool(getattr(target, WRAPPED_ATTRIBUTE, False))


def _innermost(func: Callable) -> Callable:
    """The undecorated function under any number of ``log_call`` wrappers."""
    while is_instrumented(func):
        func = func.__wrapped__
    return func


def instrument(
    func: Callable,
    spec: InstrumentationSpec,
    site: CallSite | None = None,
    interceptor: Interceptor | None = None,
) -> Callable:
    """
    Wrap ``func`` so every call goes through the interceptor.

    A function already wrapped by ``log_call`` is unwrapped first and
    instrumented again with ``spec``, so a call never passes through two
    interceptors. Generator functions are logged once the generator is
    exhausted, closed or fails, covering the whole iteration.

    Args:
        func: Plain, coroutine or generator function
        spec: What to capture
        site: Call site; inspected from ``func`` when omitted
        interceptor: Fixed interceptor. The global one is looked up per
            call when omitted.
    """
    func = _innermost(func)
    site = site or CallSite.for_callable(func)

    if inspect.isgeneratorfunction(func):

        @wraps(func)
        def generator_wrapper(*args, **kwargs):
            active = interceptor or get_interceptor()
            return (
                yield from active.intercept_generator(
                    spec, partial(func, *args, **kwargs), site, args, kwargs
                )
            )

        wrapper = generator_wrapper
    elif inspect.iscoroutinefunction(func):

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            active = interceptor or get_interceptor()
            return await active.intercept_async(
                spec, partial(func, *args, **kwargs), site, args, kwargs
            )

        wrapper = async_wrapper
    else:

        @wraps(func)
        def wrapper(*args, **kwargs):
            active = interceptor or get_interceptor()
            return active.intercept(spec, partial(func, *args, **kwargs), site, args, kwargs)

    setattr(wrapper, SPEC_ATTRIBUTE, spec)
    setattr(wrapper, WRAPPED_ATTRIBUTE, True)
    return wrapper


def log_call(
    func: Callable | None = None,
    *,
    level: LogLevel | str | None = None,
    log_parameters: bool = False,
    log_return: bool = False,
    log_stack_trace: bool = False,
    log_exception: bool = False,
    custom_pattern: str | None = None,
    spec: InstrumentationSpec | None = None,
    interceptor: Interceptor | None = None,
):
    """
    Decorator logging every call of the decorated function.

    Usable bare (``@log_call``) or with options. Also accepts a
    ``staticmethod`` or ``classmethod`` object when stacked above it.

    Usage:
        @log_call(level="INFO", custom_pattern="{className}.{methodName} -> {return}")
        def lookup(key):
            ...
    """
    if spec is None:
        spec = build_spec(
            level=level,
            log_parameters=log_parameters,
            log_return=log_return,
            log_stack_trace=log_stack_trace,
            log_exception=log_exception,
            custom_pattern=custom_pattern,
        )

    def decorator(target):
        if isinstance(target, (staticmethod, classmethod)):
            inner = _innermost(target.__func__)
            site = CallSite.for_callable(inner, bound_method=isinstance(target, classmethod))
            return type(target)(instrument(inner, spec, site=site, interceptor=interceptor))
        return instrument(target, spec, interceptor=interceptor)

    if func is not None:
        return decorator(func)
    return decorator


def log_call_spec(
    func: Callable | None = None,
    *,
    level: LogLevel | str | None = None,
    log_parameters: bool = False,
    log_return: bool = False,
    log_stack_trace: bool = False,
    log_exception: bool = False,
    custom_pattern: str | None = None,
    spec: InstrumentationSpec | None = None,
):
    """Attach a spec without wrapping; see ``logcall.factory``."""
    if spec is None:
        spec = build_spec(
            level=level,
            log_parameters=log_parameters,
            log_return=log_return,
            log_stack_trace=log_stack_trace,
            log_exception=log_exception,
            custom_pattern=custom_pattern,
        )

    def decorator(target):
        inner = target.__func__ if isinstance(target, (staticmethod, classmethod)) else target
        setattr(inner, SPEC_ATTRIBUTE, spec)
        return target

    if func is not None:
        return decorator(func)
    return decorator
