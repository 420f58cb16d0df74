"""Replacing the body of a live Python function and putting it back."""

from __future__ import annotations

import inspect
import types
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

_TARGET_KEY = "_injectorpp_target"


def _forward(*args, _injectorpp_target, **kwargs):
    return _injectorpp_target(*args, **kwargs)


@dataclass(frozen=True)
class _FunctionState:
    """The parts of a function object that a patch overwrites."""

    code: types.CodeType
    defaults: tuple[Any, ...] | None
    kwdefaults: dict[str, Any] | None

    @classmethod
    def capture(cls, func: types.FunctionType) -> _FunctionState:
        kwdefaults = func.__kwdefaults__
        return cls(
            func.__code__,
            func.__defaults__,
            dict(kwdefaults) if kwdefaults is not None else None,
        )

    def apply(self, func: types.FunctionType) -> None:
        func.__code__ = self.code
        func.__defaults__ = self.defaults
        func.__kwdefaults__ = (
            dict(self.kwdefaults) if self.kwdefaults is not None else None
        )


def _resolve(func: Any) -> types.FunctionType:
    """Return the plain function object behind ``func`` that can be patched."""
    if func is None:
        raise ValueError("Pointer must not be null")
    if inspect.ismethod(func) or isinstance(func, (staticmethod, classmethod)):
        func = func.__func__
    if not isinstance(func, types.FunctionType):
        raise TypeError(f"{func!r} is not a Python function and cannot be patched")
    if func.__code__.co_freevars:
        raise TypeError(
            f"{func.__qualname__} uses variables of an enclosing scope "
            "and cannot be patched"
        )
    return func


def _install(func: types.FunctionType, target: Callable[..., Any]) -> PatchGuard:
    original = _FunctionState.capture(func)
    code = _forward.__code__.replace(co_name=func.__code__.co_name)
    func.__defaults__ = None
    func.__kwdefaults__ = {_TARGET_KEY: target}
    try:
        func.__code__ = code
    except (TypeError, ValueError):
        original.apply(func)
        raise
    return PatchGuard(func, original)


class PatchGuard:
    """Holds what a patched function looked like and restores it on demand."""

    def __init__(self, func: types.FunctionType, original_code: _FunctionState):
        self.func = func
        self.original_code = original_code
        self._restored = False

    @property
    def restored(self) -> bool:
        """Whether the original function body has been put back."""
        return self._restored

    def restore(self) -> None:
        """Put the original body back; later calls do nothing."""
        if self._restored:
            return
        self.original_code.apply(self.func)
        self._restored = True

    def __enter__(self) -> PatchGuard:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.restore()


def replace_function_with_other_function(
    src: Callable[..., Any], target: Callable[..., Any]
) -> PatchGuard:
    """Make every call of ``src`` run ``target`` with the same arguments."""
    func = _resolve(src)
    if target is None:
        raise ValueError("Pointer must not be null")
    if not callable(target):
        raise TypeError(f"{target!r} is not callable")
    return _install(func, target)


def replace_function_return_boolean(src: Callable[..., Any], value: bool) -> PatchGuard:
    """Make every call of ``src`` return ``value`` without running its body."""
    func = _resolve(src)
    constant = bool(value)
    return _install(func, lambda *args, **kwargs: constant)


class WhenCalled:
    """Chooses what a given function does once it is patched."""

    def __init__(self, func: Callable[..., Any]):
        self.func = _resolve(func)

    def will_execute_guard(self, target: Callable[..., Any]) -> PatchGuard:
        """Redirect calls of the function to ``target``."""
        return replace_function_with_other_function(self.func, target)

    def will_return_boolean_guard(self, value: bool) -> PatchGuard:
        """Make the function return ``value``."""
        return replace_function_return_boolean(self.func, value)