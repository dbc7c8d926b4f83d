"""Wire format: length-prefixed request arguments and tagged response values.

All integers and lengths are little-endian.  A request body is a 32-bit
argument count followed by each argument as a 32-bit length and its bytes.
A response value starts with a one-byte tag that says what follows.
"""

from __future__ import annotations

import struct
from enum import IntEnum
from typing import Iterable, Union

MAX_MSG = 32 << 20
MAX_ARGS = 200 * 1000

_U8 = struct.Struct("<B")
_U32 = struct.Struct("<I")
_I64 = struct.Struct("<q")
_F64 = struct.Struct("<d")

_I64_MIN = -(1 << 63)
_I64_MAX = (1 << 63) - 1
_U32_MAX = (1 << 32) - 1

Value = Union[None, bytes, int, float, list, tuple]


class Tag(IntEnum):
    """Type tag that starts every serialized value."""

    NIL = 0
    ERR = 1
    STR = 2
    INT = 3
    DBL = 4
    ARR = 5


class ErrorCode(IntEnum):
    """Codes carried by an error value."""

    UNKNOWN = 1
    TOO_BIG = 2
    BAD_ARGUMENT = 3
    BAD_TYPE = 4
    NOT_FOUND = 5


class ProtocolError(ValueError):
    """Raised when bytes on the wire do not follow the format."""


def _to_bytes(value: bytes | bytearray | memoryview | str) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    raise TypeError(f"expected bytes or str, got {type(value).__name__}")


def _check_u32(value: int) -> int:
    if not 0 <= value <= _U32_MAX:
        raise OverflowError(f"{value} does not fit in 32 unsigned bits")
    return value


class ResponseWriter:
    """Builds a sequence of serialized response values."""

    def __init__(self) -> None:
        self._buf = bytearray()

    def __len__(self) -> int:
        return len(self._buf)

    def _tag(self, tag: Tag) -> None:
        self._buf += _U8.pack(tag)

    def nil(self) -> None:
        """Append a nil value."""
        self._tag(Tag.NIL)

    def str(self, value: bytes | str) -> None:
        """Append a string value."""
        data = _to_bytes(value)
        self._tag(Tag.STR)
        self._buf += _U32.pack(_check_u32(len(data)))
        self._buf += data

    def int(self, value: int) -> None:
        """Append a signed 64-bit integer value."""
        if not _I64_MIN <= value <= _I64_MAX:
            raise OverflowError(f"{value} does not fit in 64 signed bits")
        self._tag(Tag.INT)
        self._buf += _I64.pack(value)

    def dbl(self, value: float) -> None:
        """Append a double value."""
        self._tag(Tag.DBL)
        self._buf += _F64.pack(value)

    def err(self, code: int, message: bytes | str) -> None:
        """Append an error value with a code and a message."""
        data = _to_bytes(message)
        self._tag(Tag.ERR)
        self._buf += _U32.pack(_check_u32(code))
        self._buf += _U32.pack(_check_u32(len(data)))
        self._buf += data

    def arr(self, count: int) -> None:
        """Append an array header; the caller appends ``count`` values after it."""
        self._tag(Tag.ARR)
        self._buf += _U32.pack(_check_u32(count))

    def begin_array(self) -> int:
        """Append an array header whose count is filled in later.

        Returns the position of the count field, for :meth:`end_array`.
        """
        self._tag(Tag.ARR)
        self._buf += _U32.pack(0)
        return len(self._buf) - 4

    def end_array(self, position: int, count: int) -> None:
        """Fill in the count of an array started with :meth:`begin_array`."""
        if position < 1 or position + 4 > len(self._buf) or self._buf[position - 1] != Tag.ARR:
            raise ValueError(f"no array header at position {position}")
        self._buf[position : position + 4] = _U32.pack(_check_u32(count))

    def getvalue(self) -> bytes:
        """Return everything written so far."""
        return bytes(self._buf)


class _Reader:
    """Sequential reader over a byte string."""

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._data = bytes(data)
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def take(self, count: int) -> bytes:
        end = self._pos + count
        if end > len(self._data):
            raise ProtocolError("truncated data")
        chunk = self._data[self._pos : end]
        self._pos = end
        return chunk

    def u8(self) -> int:
        return _U8.unpack(self.take(1))[0]

    def u32(self) -> int:
        return _U32.unpack(self.take(4))[0]

    def i64(self) -> int:
        return _I64.unpack(self.take(8))[0]

    def f64(self) -> float:
        return _F64.unpack(self.take(8))[0]


def parse_request(data: bytes | bytearray | memoryview) -> list[bytes]:
    """Split a request body into its arguments.

    Raises ProtocolError if the body is truncated, has bytes left over, or
    declares more than MAX_ARGS arguments.
    """
    reader = _Reader(data)
    count = reader.u32()
    if count > MAX_ARGS:
        raise ProtocolError(f"too many arguments: {count}")
    args = [reader.take(reader.u32()) for _ in range(count)]
    if reader.remaining:
        raise ProtocolError("trailing data after request")
    return args


def encode_request(args: Iterable[bytes | str]) -> bytes:
    """Serialize arguments into a request body that parse_request accepts."""
    parts = [_to_bytes(arg) for arg in args]
    if len(parts) > MAX_ARGS:
        raise ValueError(f"too many arguments: {len(parts)}")
    out = bytearray(_U32.pack(len(parts)))
    for part in parts:
        out += _U32.pack(_check_u32(len(part)))
        out += part
    return bytes(out)


def _read_value(reader: _Reader) -> Value:
    raw_tag = reader.u8()
    try:
        tag = Tag(raw_tag)
    except ValueError:
        raise ProtocolError(f"unknown tag {raw_tag}") from None
    if tag is Tag.NIL:
        return None
    if tag is Tag.STR:
        return reader.take(reader.u32())
    if tag is Tag.INT:
        return reader.i64()
    if tag is Tag.DBL:
        return reader.f64()
    if tag is Tag.ERR:
        raw_code = reader.u32()
        message = reader.take(reader.u32()).decode("utf-8", errors="replace")
        try:
            code: int = ErrorCode(raw_code)
        except ValueError:
            code = raw_code
        return (code, message)
    count = reader.u32()
    return [_read_value(reader) for _ in range(count)]


def decode_value(data: bytes | bytearray | memoryview) -> Value:
    """Decode exactly one serialized value.

    Nil becomes None, strings bytes, integers int, doubles float, arrays
    lists, and errors a ``(code, message)`` tuple.
    """
    reader = _Reader(data)
    value = _read_value(reader)
    if reader.remaining:
        raise ProtocolError("trailing data after value")
    return value