"""
Class-level front-ends for methods marked with ``log_call_spec``.

Two ways to activate the marks:

- ``ProxyFactory`` / ``create``: generate (once per class) a subclass whose
  marked methods are instrumented, and instantiate it. The original class
  is left untouched.
- ``weave``: instrument the marked methods of a class in place. Safe to
  apply more than once.

Methods already wrapped by ``log_call`` are never wrapped again, so every
call passes through at most one interceptor frame.
"""

import inspect
import logging
import threading
from typing import Any

from logcall.decorators import instrument, is_instrumented, spec_of
from logcall.errors import InstrumentationError
from logcall.interceptor import Interceptor
from logcall.invocation import CallSite

logger = logging.getLogger(__name__)

WOVEN_ATTRIBUTE = "__logcall_woven__"
PROXY_ATTRIBUTE = "__logcall_proxy_of__"


def instrument_member(owner: type, value: Any, interceptor: Interceptor | None = None) -> Any:
    """Instrumented replacement for a class attribute, or None if it needs none."""
    spec = spec_of(value)
    if spec is None or is_instrumented(value):
        return None

    if isinstance(value, staticmethod):
        func = value.__func__
        site = CallSite.for_callable(func, owner=owner, bound_method=False)
        return staticmethod(instrument(func, spec, site, interceptor))

    if isinstance(value, classmethod):
        func = value.__func__
        site = CallSite.for_callable(func, owner=owner, bound_method=True)
        return classmethod(instrument(func, spec, site, interceptor))

    if inspect.isfunction(value):
        site = CallSite.for_callable(value, owner=owner, bound_method=True)
        return instrument(value, spec, site, interceptor)

    return None


def _resolved_members(cls: type) -> dict[str, tuple[type, Any]]:
    """Attribute name -> (declaring class, raw attribute), most derived wins."""
    members: dict[str, tuple[type, Any]] = {}
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        for name, value in vars(klass).items():
            members[name] = (klass, value)
    return members


class ProxyFactory:
    """
    Memoizing registry of generated proxy classes.

    Each target class gets exactly one proxy subclass, built on first
    request. Concurrent first requests share the same proxy.
    """

    def __init__(self, interceptor: Interceptor | None = None):
        """
        Initialize proxy factory.

        Args:
            interceptor: Interceptor baked into generated proxies. The
                global one is used per call when omitted.
        """
        self.interceptor = interceptor
        self._proxies: dict[type, type] = {}
        self._lock = threading.Lock()

    def _build(self, cls: type) -> type:
        namespace: dict[str, Any] = {
            "__module__": cls.__module__,
            "__qualname__": cls.__qualname__,
            "__doc__": cls.__doc__,
            PROXY_ATTRIBUTE: cls,
        }
        instrumented = 0
        for name, (owner, value) in _resolved_members(cls).items():
            replacement = instrument_member(owner, value, self.interceptor)
            if replacement is not None:
                namespace[name] = replacement
                instrumented += 1

        proxy = type(cls)(cls.__name__, (cls,), namespace)
        logger.debug(f"Proxy built for {cls.__qualname__}: {instrumented} instrumented method(s)")
        return proxy

    def proxy_class(self, cls: type) -> type:
        """Get or create the proxy subclass for ``cls``."""
        if not isinstance(cls, type):
            raise InstrumentationError(f"Cannot proxy {cls!r}: not a class")

        proxy = self._proxies.get(cls)
        if proxy is not None:
            return proxy

        with self._lock:
            proxy = self._proxies.get(cls)
            if proxy is None:
                proxy = self._build(cls)
                self._proxies[cls] = proxy
        return proxy

    def create(self, cls: type, *args, **kwargs) -> Any:
        """
        Instantiate the proxy for ``cls``.

        Raises:
            InstrumentationError: If the constructor does not accept the
                given arguments
        """
        proxy = self.proxy_class(cls)
        try:
            inspect.signature(proxy).bind(*args, **kwargs)
        except TypeError as e:
            raise InstrumentationError(
                f"Cannot create a proxy instance of {cls.__qualname__}. "
                f"Check the constructor arguments: {e}"
            ) from e
        except ValueError:
            # No introspectable signature (builtin base); let the call decide
            pass
        return proxy(*args, **kwargs)

    def clear(self) -> None:
        with self._lock:
            self._proxies.clear()

    def __len__(self) -> int:
        return len(self._proxies)


def weave(cls: type | None = None, *, interceptor: Interceptor | None = None):
    """
    Instrument the marked methods declared on a class, in place.

    Usable as a class decorator, bare or with options. Only attributes
    declared on the class itself are considered; weave base classes
    separately. Applying it twice is a no-op.

    Raises:
        InstrumentationError: If the target is not a class
    """

    def apply(target: type) -> type:
        if not isinstance(target, type):
            raise InstrumentationError(f"Cannot weave {target!r}: not a class")
        if target.__dict__.get(WOVEN_ATTRIBUTE):
            return target

        woven = 0
        for name, value in list(vars(target).items()):
            replacement = instrument_member(target, value, interceptor)
            if replacement is not None:
                setattr(target, name, replacement)
                woven += 1

        setattr(target, WOVEN_ATTRIBUTE, True)
        logger.debug(f"Woven {woven} method(s) into {target.__qualname__}")
        return target

    if cls is not None:
        return apply(cls)
    return apply


# Global proxy factory instance
default_factory = ProxyFactory()


def create(cls: type, *args, **kwargs) -> Any:
    """Instantiate ``cls`` through the global proxy factory."""
    return default_factory.create(cls, *args, **kwargs)
