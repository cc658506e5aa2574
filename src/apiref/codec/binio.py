"""Little-endian binary reader/writer shared by the codecs.

Both sides raise on the first failure, using the error class they were built
with, so a codec either produces complete output or raises.

Usage:
    w = BinaryWriter(ManifestError)
    w.write_u32(3)
    w.write_string("Part")

    r = BinaryReader(w.getvalue(), ManifestError)
    count = r.read_u32()
"""

from __future__ import annotations

import struct

from apiref.errors import CodecError

MAX_STRING = 255

_U8 = struct.Struct("<B")
_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")
_I32 = struct.Struct("<i")


class BinaryWriter:
    """Accumulates encoded bytes."""

    def __init__(self, error: type[CodecError] = CodecError) -> None:
        self._buf = bytearray()
        self._error = error

    def getvalue(self) -> bytes:
        return bytes(self._buf)

    def _pack(self, fmt: struct.Struct, value: int, what: str) -> None:
        try:
            self._buf += fmt.pack(value)
        except struct.error as e:
            raise self._error(f"{what} out of range: {value}") from e

    def write_u8(self, value: int) -> None:
        self._pack(_U8, value, "u8")

    def write_u16(self, value: int) -> None:
        self._pack(_U16, value, "u16")

    def write_u32(self, value: int) -> None:
        self._pack(_U32, value, "u32")

    def write_i32(self, value: int) -> None:
        self._pack(_I32, value, "i32")

    def write_bool(self, value: bool) -> None:
        self.write_u8(1 if value else 0)

    def write_bytes(self, data: bytes) -> None:
        self._buf += data

    def write_string(self, value: str | bytes) -> None:
        """Write a u8-length-prefixed string.

        Raises:
            CodecError: If the encoded string is longer than 255 bytes.
        """
        data = value.encode("utf-8") if isinstance(value, str) else value
        if len(data) > MAX_STRING:
            raise self._error(f"string too long ({len(data)} bytes): {data[:32]!r}...")
        self.write_u8(len(data))
        self._buf += data


class BinaryReader:
    """Reads values from a byte buffer, tracking position."""

    def __init__(self, data: bytes, error: type[CodecError] = CodecError) -> None:
        self._data = memoryview(data)
        self._pos = 0
        self._error = error

    @property
    def position(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def read_bytes(self, n: int) -> bytes:
        if n > self.remaining:
            raise self._error(
                f"unexpected end of data at offset {self._pos}: need {n} bytes, have {self.remaining}"
            )
        chunk = bytes(self._data[self._pos : self._pos + n])
        self._pos += n
        return chunk

    def _unpack(self, fmt: struct.Struct) -> int:
        return fmt.unpack(self.read_bytes(fmt.size))[0]

    def read_u8(self) -> int:
        return self._unpack(_U8)

    def read_u16(self) -> int:
        return self._unpack(_U16)

    def read_u32(self) -> int:
        return self._unpack(_U32)

    def read_i32(self) -> int:
        return self._unpack(_I32)

    def read_bool(self) -> bool:
        return self.read_u8() != 0

    def read_string(self) -> str:
        length = self.read_u8()
        data = self.read_bytes(length)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise self._error(f"invalid UTF-8 string at offset {self._pos - length}") from e


def get_bit(value: int, bit: int) -> bool:
    return bool(value >> bit & 1)


def set_bit(value: int, bit: int, on: bool) -> int:
    if on:
        return value | 1 << bit
    return value & ~(1 << bit)


def get_bits(value: int, lo: int, hi: int) -> int:
    """Bits ``lo`` (inclusive) through ``hi`` (exclusive) of value."""
    return value >> lo & ((1 << (hi - lo)) - 1)


def set_bits(value: int, lo: int, hi: int, field: int) -> int:
    """Store ``field`` into bits ``lo`` through ``hi`` (exclusive) of value."""
    mask = (1 << (hi - lo)) - 1
    return value & ~(mask << lo) | (field & mask) << lo
