"""Command execution against the in-memory key space.

Each key holds either a string or a sorted set.  Commands arrive as lists
of byte-string arguments and produce one serialized response value.
"""

from __future__ import annotations

import math
import re
from typing import Callable, Iterable, Sequence, Union

from kvserver.protocol import ErrorCode, ResponseWriter
from kvserver.zset import ZSet

_INT_RE = re.compile(rb"[+-]?[0-9]+")
_I64_MIN = -(1 << 63)
_I64_MAX = (1 << 63) - 1

Arg = Union[bytes, bytearray, memoryview, str]

_EMPTY_ZSET = ZSet()


class _WrongType(Exception):
    """The key exists but does not hold a sorted set."""


def _as_bytes(value: Arg) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    raise TypeError(f"expected bytes or str, got {type(value).__name__}")


def parse_float(text: Arg) -> float:
    """Parse a whole argument as a floating point number.

    Raises ValueError if the text is not a number or is NaN.
    """
    raw = _as_bytes(text)
    if not raw or raw != raw.strip() or b"_" in raw:
        raise ValueError(f"not a number: {raw!r}")
    try:
        value = float(raw.decode("ascii"))
    except (UnicodeDecodeError, ValueError):
        raise ValueError(f"not a number: {raw!r}") from None
    if math.isnan(value):
        raise ValueError("NaN is not accepted")
    return value


def parse_int(text: Arg) -> int:
    """Parse a whole argument as a signed 64-bit decimal integer.

    Raises ValueError if the text is not an integer or is out of range.
    """
    raw = _as_bytes(text)
    if not _INT_RE.fullmatch(raw):
        raise ValueError(f"not an integer: {raw!r}")
    value = int(raw)
    if not _I64_MIN <= value <= _I64_MAX:
        raise ValueError(f"integer out of range: {raw!r}")
    return value


class Store:
    """The key space: every key maps to a string value or a sorted set."""

    def __init__(self) -> None:
        self._data: dict[bytes, Union[bytes, ZSet]] = {}
        self._handlers: dict[tuple[bytes, int], Callable[[list[bytes], ResponseWriter], None]] = {
            (b"GET", 2): self._get,
            (b"SET", 3): self._set,
            (b"DEL", 2): self._del,
            (b"KEYS", 1): self._keys,
            (b"ZADD", 4): self._zadd,
            (b"ZSCORE", 3): self._zscore,
            (b"ZRANK", 3): self._zrank,
            (b"ZQUERY", 6): self._zquery,
            (b"ZREM", 3): self._zrem,
        }

    def __len__(self) -> int:
        return len(self._data)

    def keys(self) -> list[bytes]:
        """Return every key currently stored."""
        return list(self._data)

    def execute(self, cmd: Sequence[Arg] | Iterable[Arg]) -> bytes:
        """Run one command and return its serialized response value."""
        args = [_as_bytes(arg) for arg in cmd]
        out = ResponseWriter()
        handler = self._handlers.get((args[0], len(args))) if args else None
        if handler is None:
            out.err(ErrorCode.UNKNOWN, "unknown command")
        else:
            handler(args, out)
        return out.getvalue()

    def _expect_zset(self, key: bytes) -> ZSet:
        value = self._data.get(key)
        if value is None:
            return _EMPTY_ZSET
        if not isinstance(value, ZSet):
            raise _WrongType(key)
        return value

    def _get(self, args: list[bytes], out: ResponseWriter) -> None:
        value = self._data.get(args[1])
        if value is None:
            out.nil()
        elif isinstance(value, ZSet):
            out.err(ErrorCode.BAD_TYPE, "not a string value")
        else:
            out.str(value)

    def _set(self, args: list[bytes], out: ResponseWriter) -> None:
        key, value = args[1], args[2]
        if isinstance(self._data.get(key), ZSet):
            out.err(ErrorCode.BAD_TYPE, "a non-string value exists")
            return
        self._data[key] = value
        out.nil()

    def _del(self, args: list[bytes], out: ResponseWriter) -> None:
        removed = self._data.pop(args[1], None)
        if isinstance(removed, ZSet):
            removed.clear()
        out.int(0 if removed is None else 1)

    def _keys(self, args: list[bytes], out: ResponseWriter) -> None:
        out.arr(len(self._data))
        for key in self._data:
            out.str(key)

    def _zadd(self, args: list[bytes], out: ResponseWriter) -> None:
        try:
            score = parse_float(args[2])
        except ValueError:
            out.err(ErrorCode.BAD_ARGUMENT, "excepting a float")
            return
        key = args[1]
        zset = self._data.get(key)
        if zset is None:
            zset = ZSet()
            self._data[key] = zset
        elif not isinstance(zset, ZSet):
            out.err(ErrorCode.BAD_ARGUMENT, "expecting set, key already present in HashMap")
            return
        out.int(int(zset.insert(args[3], score)))

    def _zscore(self, args: list[bytes], out: ResponseWriter) -> None:
        try:
            zset = self._expect_zset(args[1])
        except _WrongType:
            out.err(ErrorCode.BAD_TYPE, "expect zset")
            return
        score = zset.lookup(args[2])
        if score is None:
            out.nil()
        else:
            out.dbl(score)

    def _zrank(self, args: list[bytes], out: ResponseWriter) -> None:
        try:
            zset = self._expect_zset(args[1])
        except _WrongType:
            out.err(ErrorCode.BAD_TYPE, "expect zset")
            return
        rank = zset.rank(args[2])
        if rank is None:
            out.err(ErrorCode.NOT_FOUND, "not found")
        else:
            out.int(rank)

    def _zquery(self, args: list[bytes], out: ResponseWriter) -> None:
        try:
            score = parse_float(args[2])
        except ValueError:
            out.err(ErrorCode.BAD_ARGUMENT, "expect fp number")
            return
        try:
            offset = parse_int(args[4])
            limit = parse_int(args[5])
        except ValueError:
            out.err(ErrorCode.BAD_ARGUMENT, "expect int")
            return
        try:
            zset = self._expect_zset(args[1])
        except _WrongType:
            out.err(ErrorCode.BAD_TYPE, "expect zset")
            return
        if limit <= 0:
            out.arr(0)
            return
        # The limit counts array items; each member contributes a name and a score.
        pairs = zset.query(score, args[3], offset, (limit + 1) // 2)
        position = out.begin_array()
        for name, member_score in pairs:
            out.str(name)
            out.dbl(member_score)
        out.end_array(position, 2 * len(pairs))

    def _zrem(self, args: list[bytes], out: ResponseWriter) -> None:
        try:
            zset = self._expect_zset(args[1])
        except _WrongType:
            out.err(ErrorCode.BAD_TYPE, "expect zset")
            return
        out.int(int(zset.delete(args[2])))