# injectorpp

`injectorpp` lets a test change what a Python function does while the test
runs. You do not need to add parameters, interfaces or other indirection to
the code under test so that it can be faked. The fake replaces the body of the
function object itself, so every caller sees it, including code that imported
the function earlier. The original body comes back when the injector is
closed.

## Installing

```
pip install .
pip install ".[test]"   # adds pytest and pytest-asyncio for the test suite
```

## Faking a function

Wrap the function in a `FuncPtr` (from `injectorpp.funcptr`) together with a
signature string. Then use `InjectorPP` (from `injectorpp.injector`) to say
what should happen when the function is called:

```python
from injectorpp.funcptr import FuncPtr
from injectorpp.injector import InjectorPP


def returns_false() -> bool:
    return False


with InjectorPP() as injector:
    injector.when_called(FuncPtr(returns_false, "fn() -> bool")).will_return_boolean(True)
    assert returns_false() is True

assert returns_false() is False
```

`will_return_boolean` accepts only a signature that ends in `-> bool`. Any
other signature raises `TypeError` with a message that starts with
`Signature mismatch`.

`FuncPtr(None, ...)` raises `ValueError("Pointer must not be null")`. A value
that is not callable, or a signature that is not a string, raises `TypeError`.

## Replacing a function with another

`will_execute_raw` sends every call of the faked function to a replacement,
with the same positional and keyword arguments. The replacement's signature
string must equal the one given to `when_called`. If it does not, a
`TypeError` starting with `Signature mismatch` is raised:

```python
def add_one(x: int) -> int:
    return x + 1


def fake_add_one(x: int) -> int:
    return 100


with InjectorPP() as injector:
    injector.when_called(FuncPtr(add_one, "fn(int) -> int")).will_execute_raw(
        FuncPtr(fake_add_one, "fn(int) -> int")
    )
    assert add_one(1) == 100
```

The replacement can be any callable, including a lambda or a closure.

`when_called_unchecked` and `will_execute_raw_unchecked` do the same without
comparing signatures.

You can fake methods by passing the function from the class, such as
`FuncPtr(Client.get, ...)`. A bound method also works, because its underlying
function is patched. In both cases every instance is affected.

## Coroutine functions

To fake a coroutine function, call `when_called_async` with the function and
a string naming its result type. Then call `will_return_async` with a
`FuncPtr` whose signature is that same string. The target may be a plain
function or a coroutine function. Awaiting the faked function yields whatever
the target returns, awaited first if it is awaitable:

```python
import asyncio


async def fetch() -> str:
    return "real"


async def main() -> None:
    with InjectorPP() as injector:
        injector.when_called_async(fetch, "str").will_return_async(
            FuncPtr(lambda: "fake", "str")
        )
        assert await fetch() == "fake"
    assert await fetch() == "real"


asyncio.run(main())
```

`when_called_async` raises `TypeError` if the function is not a coroutine
function. `when_called_async_unchecked` and `will_return_async_unchecked` skip
the signature check.

## Lifetime and threads

An `InjectorPP` holds a process-wide reentrant lock from creation until it is
closed. While it is held, creating an injector on another thread waits.

You can use an injector as a context manager, or call `close()` yourself.
Either way, every fake it installed is undone, newest first. After closing,
`closed` is `True`, and further `when_called*` calls raise `RuntimeError`.
Closing twice does nothing.

## Lower-level patching

`injectorpp.patching` provides the mechanism the injector uses:

- `replace_function_with_other_function(src, target)` and
  `replace_function_return_boolean(src, value)` patch a function directly.
- Both return a `PatchGuard`. Its `restore()` method puts the original code,
  defaults and keyword defaults back. A guard is also a context manager.
- `WhenCalled(func)` offers the same two operations as
  `will_execute_guard` and `will_return_boolean_guard`.

## Machine-code helpers

The package also includes instruction encoders that work on plain integers
and `bytes`:

- `injectorpp.bits`: `u64_to_bits`, `u8_to_bits` and `bool_array_to_u32`.
  These convert between integers and least-significant-bit-first tuples of
  booleans.
- `injectorpp.arm64`: `emit_movz`, `emit_movk`, `emit_br`, `emit_ret` and
  `emit_ret_x30`, plus the `*_from_address` variants, return 32-bit
  encodings.
  - `branch_patch(func_addr, jit_addr)` returns a 12-byte relative branch
    followed by two NOPs. It raises `ValueError` when the distance is out of
    branch range.
  - `will_execute_jit_code(target_addr)` returns the code that loads an
    address into x9 and branches to it.
  - `will_return_boolean_jit_code(value)` returns the code that returns a
    boolean.
- `injectorpp.amd64`:
  - `branch_to_target(ori_func, target_func)` returns a 5-byte relative jump,
    or a 12-byte `mov rax, imm64; jmp rax` when the target is out of 32-bit
    range.
  - `will_return_boolean_jit_code(value)` returns `mov rax, value; ret`.

## What this package does not do

- It patches only Python function objects.
  - Built-in and C-implemented functions raise `TypeError`.
  - Functions that refer to variables of an enclosing scope raise `TypeError`.
- The arm64 and amd64 helpers only produce bytes. Nothing in the package
  writes them into process memory or patches native code.
- There is no call-count expectation or argument-matching helper. Put such
  logic in the replacement callable you pass to `will_execute_raw`.