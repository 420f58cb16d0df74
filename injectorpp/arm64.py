"""AArch64 instruction encoding and patch code generation."""

import struct
from collections.abc import Iterable
from itertools import chain

from .bits import bool_array_to_u32, u64_to_bits, u8_to_bits

NOP = 0xD503201F
BRANCH_OPCODE = 0x14000000
BRANCH_IMM_MASK = 0x03FFFFFF
PATCH_SIZE = 12
EXECUTE_JIT_SIZE = 20
RETURN_BOOLEAN_JIT_SIZE = 8

_BRANCH_MIN = -33554432
_BRANCH_MAX = 33554431
_ADDRESS_LIMIT = 1 << 64

_T = True
_F = False


def _field(bits: Iterable[bool], width: int, name: str) -> tuple[bool, ...]:
    field = tuple(bool(bit) for bit in bits)
    if len(field) != width:
        raise ValueError(f"{name} must have {width} bits, got {len(field)}")
    return field


def _assemble(*fields: Iterable[bool]) -> tuple[bool, ...]:
    code = tuple(chain.from_iterable(fields))
    if len(code) != 32:
        raise AssertionError(f"instruction has {len(code)} bits instead of 32")
    return code


def _word(code: Iterable[bool]) -> bytes:
    return bool_array_to_u32(code).to_bytes(4, "little")


def _immediate_from_address(address: int, start: int) -> tuple[bool, ...]:
    if not 0 <= start <= 48:
        raise ValueError(f"start bit must be between 0 and 48, got {start}")
    return u64_to_bits(address)[start:start + 16]


def emit_ret_x30() -> tuple[bool, ...]:
    """Encode ``RET`` using the link register x30."""
    return emit_ret(u8_to_bits(30, 5))


def emit_ret(register_name: Iterable[bool]) -> tuple[bool, ...]:
    """Encode ``RET`` returning through the given 5-bit register."""
    register = _field(register_name, 5, "register_name")
    return _assemble(
        (_F,) * 5,
        register,
        (_F, _F),
        (_F,) * 4,
        (_T,) * 5,
        (_F, _T),
        (_F,),
        (_F,),
        (_T, _T, _F, _T, _F, _T, _T),
    )


def emit_br(register_name: Iterable[bool]) -> tuple[bool, ...]:
    """Encode ``BR`` branching to the address held in the given register."""
    register = _field(register_name, 5, "register_name")
    return _assemble(
        (_F,) * 5,
        register,
        (_F, _F),
        (_F,) * 4,
        (_T,) * 5,
        (_F, _F),
        (_F,),
        (_F,),
        (_T, _T, _F, _T, _F, _T, _T),
    )


def emit_movk(
    value_bits: Iterable[bool],
    sf: bool,
    hw: Iterable[bool],
    register_name: Iterable[bool],
) -> tuple[bool, ...]:
    """Encode ``MOVK`` with a 16-bit immediate and a 2-bit shift field."""
    return _assemble(
        _field(register_name, 5, "register_name"),
        _field(value_bits, 16, "value_bits"),
        _field(hw, 2, "hw"),
        (_T, _F, _T, _F, _F, _T),
        (_T, _T),
        (bool(sf),),
    )


def emit_movz(
    value_bits: Iterable[bool],
    sf: bool,
    hw: Iterable[bool],
    register_name: Iterable[bool],
) -> tuple[bool, ...]:
    """Encode ``MOVZ`` with a 16-bit immediate and a 2-bit shift field."""
    return _assemble(
        _field(register_name, 5, "register_name"),
        _field(value_bits, 16, "value_bits"),
        _field(hw, 2, "hw"),
        (_T, _F, _T, _F, _F, _T),
        (_F, _T),
        (bool(sf),),
    )


def emit_movk_from_address(
    address: int,
    start: int,
    sf: bool,
    hw: Iterable[bool],
    register_name: Iterable[bool],
) -> tuple[bool, ...]:
    """Encode ``MOVK`` loading the 16 address bits that begin at ``start``."""
    return emit_movk(_immediate_from_address(address, start), sf, hw, register_name)


def emit_movz_from_address(
    address: int,
    start: int,
    sf: bool,
    hw: Iterable[bool],
    register_name: Iterable[bool],
) -> tuple[bool, ...]:
    """Encode ``MOVZ`` loading the 16 address bits that begin at ``start``."""
    return emit_movz(_immediate_from_address(address, start), sf, hw, register_name)


def branch_patch(func_addr: int, jit_addr: int) -> bytes:
    """Return the 12-byte patch: a relative branch to ``jit_addr`` and two NOPs."""
    for address in (func_addr, jit_addr):
        if not 0 <= address < _ADDRESS_LIMIT:
            raise ValueError(f"address {address:#x} is not a valid 64-bit address")
    distance = jit_addr - func_addr
    offset = abs(distance) // 4
    if distance < 0:
        offset = -offset
    if not _BRANCH_MIN <= offset <= _BRANCH_MAX:
        raise ValueError("JIT memory is out of branch range")
    branch = BRANCH_OPCODE | (offset & BRANCH_IMM_MASK)
    return struct.pack("<III", branch, NOP, NOP)


def will_execute_jit_code(target_addr: int) -> bytes:
    """Return code that loads ``target_addr`` into x9 and branches to it."""
    x9 = u8_to_bits(9, 5)
    instructions = [
        emit_movz_from_address(target_addr, 0, True, u8_to_bits(0, 2), x9),
        emit_movk_from_address(target_addr, 16, True, u8_to_bits(1, 2), x9),
        emit_movk_from_address(target_addr, 32, True, u8_to_bits(2, 2), x9),
        emit_movk_from_address(target_addr, 48, True, u8_to_bits(3, 2), x9),
        emit_br(x9),
    ]
    return b"".join(_word(code) for code in instructions)


def will_return_boolean_jit_code(value: bool) -> bytes:
    """Return code that places ``value`` in x0 and returns."""
    value_bits = (bool(value),) + (_F,) * 15
    movz = emit_movz(value_bits, True, u8_to_bits(0, 2), u8_to_bits(0, 5))
    return _word(movz) + _word(emit_ret_x30())