# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Golomb-Rice delta decoding for compressed threat list updates.

The server may send 4-byte hash prefixes and removal indices as a first
value followed by ``entry_count`` Rice-coded deltas.  Each delta is a
unary quotient (a run of 1 bits ended by a 0 bit) followed by
``rice_parameter`` remainder bits.  Bits are consumed least significant
first within each byte.
"""

from __future__ import annotations

import struct

_UINT32_MASK = 0xFFFFFFFF
_MAX_RICE_PARAMETER = 32


class BitReader:
    """Read bits from a byte string, least significant bit first."""

    __slots__ = ("_data", "_pos", "_size")

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0
        self._size = len(data) * 8

    @property
    def bits_remaining(self) -> int:
        return self._size - self._pos

    def read_bits(self, n: int) -> int:
        if not 0 <= n <= 32:
            msg = f"Cannot read {n} bits at once"
            raise ValueError(msg)
        if n > self.bits_remaining:
            msg = "Rice data ended unexpectedly"
            raise ValueError(msg)
        if n == 0:
            return 0
        start = self._pos // 8
        # Five bytes always cover 32 bits at any bit offset.
        window = int.from_bytes(self._data[start : start + 5], "little")
        value = (window >> (self._pos % 8)) & ((1 << n) - 1)
        self._pos += n
        return value

    def read_unary(self) -> int:
        count = 0
        while self.read_bits(1):
            count += 1
        return count


def decode_rice_integers(
    first_value: int,
    rice_parameter: int,
    entry_count: int,
    encoded_data: bytes,
) -> list[int]:
    """Decode a Rice-delta sequence into ``entry_count + 1`` uint32 values.

    Raises:
        ValueError: On an invalid parameter, truncated data, or more than
            a byte of unconsumed trailing data.
    """
    values = [first_value & _UINT32_MASK]
    if entry_count <= 0:
        return values
    if not 1 <= rice_parameter <= _MAX_RICE_PARAMETER:
        msg = f"Invalid Rice parameter {rice_parameter}"
        raise ValueError(msg)

    reader = BitReader(encoded_data)
    for _ in range(entry_count):
        quotient = reader.read_unary()
        remainder = reader.read_bits(rice_parameter)
        delta = (quotient << rice_parameter) + remainder
        values.append((values[-1] + delta) & _UINT32_MASK)

    if reader.bits_remaining >= 8:
        msg = "Unconsumed Rice-encoded data"
        raise ValueError(msg)
    return values


def decode_rice_hashes(
    first_value: int,
    rice_parameter: int,
    entry_count: int,
    encoded_data: bytes,
) -> list[bytes]:
    """Decode Rice-coded 4-byte prefixes (little-endian uint32 values)."""
    values = decode_rice_integers(first_value, rice_parameter, entry_count, encoded_data)
    return [struct.pack("<I", v) for v in values]
