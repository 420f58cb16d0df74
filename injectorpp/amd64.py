"""x86-64 patch code generation."""

import struct

JMP_REL_OPCODE = 0xE9
MOV_RAX_OPCODE = bytes([0x48, 0xB8])
JMP_RAX_OPCODE = bytes([0xFF, 0xE0])
EXECUTE_JIT_SIZE = 12
RETURN_BOOLEAN_JIT_SIZE = 8

# mov rax, 0x00; ret
_RETURN_BOOLEAN_TEMPLATE = bytes([0x48, 0xC7, 0xC0, 0x00, 0x00, 0x00, 0x00, 0xC3])
_RETURN_VALUE_OFFSET = 3

_I32_MIN = -(1 << 31)
_I32_MAX = (1 << 31) - 1
_ADDRESS_LIMIT = 1 << 64


def branch_to_target(ori_func: int, target_func: int) -> bytes:
    """Return a jump placed at ``ori_func`` that transfers control to ``target_func``.

    A 5-byte relative jump is used when the target is within 32-bit range,
    otherwise an absolute jump through rax.
    """
    for address in (ori_func, target_func):
        if not 0 <= address < _ADDRESS_LIMIT:
            raise ValueError(f"address {address:#x} is not a valid 64-bit address")
    offset = target_func - (ori_func + 5)
    if _I32_MIN <= offset <= _I32_MAX:
        return bytes([JMP_REL_OPCODE]) + struct.pack("<i", offset)
    return MOV_RAX_OPCODE + struct.pack("<Q", target_func) + JMP_RAX_OPCODE


def will_return_boolean_jit_code(value: bool) -> bytes:
    """Return ``mov rax, value; ret``."""
    code = bytearray(_RETURN_BOOLEAN_TEMPLATE)
    if value:
        code[_RETURN_VALUE_OFFSET] = 1
    return bytes(code)