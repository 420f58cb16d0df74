"""Installing fakes for functions for the lifetime of an injector."""

from __future__ import annotations

import inspect
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .funcptr import FuncPtr
from .patching import PatchGuard, WhenCalled

# One injector at a time may patch functions. The lock is reentrant so that a
# thread already holding an injector does not block itself.
_LOCK_FUNCTION = threading.RLock()


def _require_funcptr(value: Any, role: str) -> FuncPtr:
    if not isinstance(value, FuncPtr):
        raise TypeError(f"{role} must be a FuncPtr, got {type(value).__name__}")
    return value


def _require_coroutine_function(func: Any) -> Callable[..., Any]:
    if func is None:
        raise ValueError("Pointer must not be null")
    if not inspect.iscoroutinefunction(func):
        raise TypeError(f"{func!r} is not an async function")
    return func


def _check_signature(expected: str, actual: str) -> None:
    if actual != expected:
        raise TypeError(f"Signature mismatch: expected {expected!r} but got {actual!r}")


def _awaitable_returning(func: Callable[..., Any]) -> Callable[..., Any]:
    """Wrap ``func`` so that calling it always yields something to await."""

    async def returning(*args: Any, **kwargs: Any) -> Any:
        result = func(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result

    return returning


class InjectorPP:
    """Holds installed fakes and restores the original functions on close.

    Only one injector patches functions at a time: creating one waits until
    every injector held by another thread has been closed.
    """

    def __init__(self) -> None:
        _LOCK_FUNCTION.acquire()
        self._guards: list[PatchGuard] = []
        self._closed = False

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("injector has been closed")

    def _push(self, guard: PatchGuard) -> None:
        self._guards.append(guard)

    def when_called(self, func: FuncPtr) -> WhenCalledBuilder:
        """Begin faking the function held by ``func``."""
        self._ensure_open()
        func = _require_funcptr(func, "func")
        return WhenCalledBuilder(self, WhenCalled(func.func), func.signature)

    def when_called_unchecked(self, func: FuncPtr) -> WhenCalledBuilder:
        """Begin faking the function held by ``func`` without signature checks."""
        self._ensure_open()
        func = _require_funcptr(func, "func")
        return WhenCalledBuilder(self, WhenCalled(func.func), "")

    def when_called_async(
        self, func: Callable[..., Any], signature: str
    ) -> WhenCalledBuilderAsync:
        """Begin faking an async function whose result has type ``signature``."""
        self._ensure_open()
        func = _require_coroutine_function(func)
        if not isinstance(signature, str):
            raise TypeError(
                f"signature must be a string, got {type(signature).__name__}"
            )
        return WhenCalledBuilderAsync(self, WhenCalled(func), signature)

    def when_called_async_unchecked(
        self, func: Callable[..., Any]
    ) -> WhenCalledBuilderAsync:
        """Begin faking an async function without signature checks."""
        self._ensure_open()
        func = _require_coroutine_function(func)
        return WhenCalledBuilderAsync(self, WhenCalled(func), "")

    @property
    def closed(self) -> bool:
        """Whether the fakes have been removed."""
        return self._closed

    def close(self) -> None:
        """Restore every faked function and let other injectors proceed."""
        if self._closed:
            return
        self._closed = True
        try:
            while self._guards:
                self._guards.pop().restore()
        finally:
            _LOCK_FUNCTION.release()

    def __enter__(self) -> InjectorPP:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, "_closed", True):
            return
        try:
            self.close()
        except RuntimeError:
            # Collected on a thread that does not own the lock.
            pass


@dataclass
class WhenCalledBuilder:
    """Chooses what a function taken by ``InjectorPP.when_called`` does."""

    lib: InjectorPP
    when: WhenCalled
    expected_signature: str

    def will_execute_raw(self, target: FuncPtr) -> None:
        """Make the function call ``target`` instead, after checking signatures."""
        target = _require_funcptr(target, "target")
        _check_signature(self.expected_signature, target.signature)
        self.lib._ensure_open()
        self.lib._push(self.when.will_execute_guard(target.func))

    def will_execute_raw_unchecked(self, target: FuncPtr) -> None:
        """Make the function call ``target`` instead, without checking signatures."""
        target = _require_funcptr(target, "target")
        self.lib._ensure_open()
        self.lib._push(self.when.will_execute_guard(target.func))

    def will_return_boolean(self, value: bool) -> None:
        """Make the function always return ``value``."""
        if not self.expected_signature.strip().endswith("-> bool"):
            raise TypeError(
                "Signature mismatch: will_return_boolean requires a function "
                f"returning bool but got {self.expected_signature}"
            )
        self.lib._ensure_open()
        self.lib._push(self.when.will_return_boolean_guard(value))


@dataclass
class WhenCalledBuilderAsync:
    """Chooses what an async function taken by ``when_called_async`` returns."""

    lib: InjectorPP
    when: WhenCalled
    expected_signature: str

    def will_return_async(self, target: FuncPtr) -> None:
        """Make awaiting the function produce what ``target`` returns."""
        target = _require_funcptr(target, "target")
        _check_signature(self.expected_signature, target.signature)
        self.lib._ensure_open()
        self.lib._push(self.when.will_execute_guard(_awaitable_returning(target.func)))

    def will_return_async_unchecked(self, target: FuncPtr) -> None:
        """As ``will_return_async``, without checking signatures."""
        target = _require_funcptr(target, "target")
        self.lib._ensure_open()
        self.lib._push(self.when.will_execute_guard(_awaitable_returning(target.func)))