"""Conversions between integers and little-endian bit sequences."""

from collections.abc import Iterable

_U64_LIMIT = 1 << 64
_U8_LIMIT = 1 << 8
_U32_WIDTH = 32


def u64_to_bits(n: int) -> tuple[bool, ...]:
    """Return the 64 bits of ``n``, least-significant bit first."""
    if not 0 <= n < _U64_LIMIT:
        raise ValueError(f"value {n} does not fit in 64 unsigned bits")
    return tuple(bool((n >> i) & 1) for i in range(64))


def u8_to_bits(n: int, width: int) -> tuple[bool, ...]:
    """Return the lowest ``width`` bits of the byte ``n``, least-significant first."""
    if not 0 <= n < _U8_LIMIT:
        raise ValueError(f"value {n} does not fit in 8 unsigned bits")
    if not 0 <= width <= 8:
        raise ValueError(f"width must be between 0 and 8, got {width}")
    return tuple(bool((n >> i) & 1) for i in range(width))


def bool_array_to_u32(bits: Iterable[bool]) -> int:
    """Pack 32 bits, least-significant first, into an unsigned integer."""
    bits = tuple(bits)
    if len(bits) != _U32_WIDTH:
        raise ValueError(f"expected {_U32_WIDTH} bits, got {len(bits)}")
    return sum(1 << i for i, bit in enumerate(bits) if bit)