"""A checked handle on a function to be faked or used as a fake."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class FuncPtr:
    """A callable paired with the signature it is expected to have.

    The signature is compared when a fake is installed, so that a fake only
    replaces a function of the same shape.
    """

    func: Callable[..., Any]
    signature: str

    def __post_init__(self) -> None:
        if self.func is None:
            raise ValueError("Pointer must not be null")
        if not callable(self.func):
            raise TypeError(f"{self.func!r} is not callable")
        if not isinstance(self.signature, str):
            raise TypeError(
                f"signature must be a string, got {type(self.signature).__name__}"
            )