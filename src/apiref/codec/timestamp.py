"""Timestamp encoding compatible with Go's ``time.Time.MarshalBinary``.

Layout (big-endian):
    version 1: u8 1, i64 seconds since 0001-01-01 UTC, i32 nanoseconds,
               i16 zone offset in minutes (-1 for UTC)
    version 2: as version 1, plus u8 extra offset seconds

Python datetimes stop at microseconds. The remaining nanoseconds (0-999) are
returned separately by ``decode_timestamp_parts`` and accepted back by
``encode_timestamp``, so a stamp written with full precision re-encodes
unchanged.
"""

from __future__ import annotations

import struct
from datetime import UTC, datetime, timedelta, timezone

from apiref.errors import CodecError

_EPOCH = datetime(1, 1, 1, tzinfo=UTC)
_V1 = struct.Struct(">Bqih")
_V2 = struct.Struct(">Bqihb")


def encode_timestamp(date: datetime, nanos: int = 0) -> bytes:
    """Encode an aware datetime.

    Args:
        date: Timestamp to encode.
        nanos: Nanoseconds below the datetime's microsecond, 0 to 999.

    Raises:
        ValueError: If the datetime is naive, its zone offset does not fit, or
            nanos is out of range.
    """
    offset = date.utcoffset()
    if offset is None:
        raise ValueError(f"cannot encode naive datetime: {date!r}")
    if not 0 <= nanos < 1000:
        raise ValueError(f"sub-microsecond nanoseconds out of range: {nanos}")

    delta = date.astimezone(UTC) - _EPOCH
    seconds = delta.days * 86400 + delta.seconds
    nanos += delta.microseconds * 1000

    if date.tzinfo is UTC:
        return _V1.pack(1, seconds, nanos, -1)

    total = int(offset.total_seconds())
    # Go truncates toward zero; extra carries the sign of the offset.
    minutes = int(total / 60)
    extra = total - minutes * 60
    if minutes == -1 or not -32768 <= minutes < 32767:
        raise ValueError(f"zone offset out of range: {offset}")
    if extra:
        return _V2.pack(2, seconds, nanos, minutes, extra)
    return _V1.pack(1, seconds, nanos, minutes)


def decode_timestamp_parts(data: bytes) -> tuple[datetime, int]:
    """Decode a timestamp into a datetime and its sub-microsecond nanoseconds.

    Raises:
        CodecError: If the data is not a valid encoded timestamp.
    """
    if not data:
        raise CodecError("empty timestamp")
    version = data[0]
    if version == 1 and len(data) == _V1.size:
        _, seconds, nanos, minutes = _V1.unpack(data)
        extra = 0
    elif version == 2 and len(data) == _V2.size:
        _, seconds, nanos, minutes, extra = _V2.unpack(data)
    else:
        raise CodecError(f"invalid timestamp (version {version}, {len(data)} bytes)")
    if not 0 <= nanos < 1_000_000_000:
        raise CodecError(f"invalid timestamp nanoseconds: {nanos}")

    micros, rest = divmod(nanos, 1000)
    try:
        date = _EPOCH + timedelta(seconds=seconds, microseconds=micros)
    except OverflowError as e:
        raise CodecError(f"timestamp out of range: {seconds}s") from e
    if minutes == -1:
        return date, rest
    try:
        offset = timedelta(minutes=minutes, seconds=extra)
        # A named zone keeps a zero offset distinct from UTC itself.
        zone = timezone(offset, "+00:00") if not offset else timezone(offset)
    except ValueError as e:
        raise CodecError(f"invalid timestamp zone offset: {minutes}m{extra}s") from e
    return date.astimezone(zone), rest


def decode_timestamp(data: bytes) -> datetime:
    """Decode a timestamp produced by ``encode_timestamp`` or Go.

    Sub-microsecond digits are dropped.

    Raises:
        CodecError: If the data is not a valid encoded timestamp.
    """
    return decode_timestamp_parts(data)[0]
