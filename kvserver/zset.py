"""Sorted set of named members ordered by (score, name)."""

from __future__ import annotations

import math
from typing import Iterator

from sortedcontainers import SortedList


def _name_bytes(name: bytes | bytearray | memoryview | str) -> bytes:
    if isinstance(name, (bytes, bytearray, memoryview)):
        return bytes(name)
    if isinstance(name, str):
        return name.encode("utf-8")
    raise TypeError(f"expected bytes or str, got {type(name).__name__}")


class ZSet:
    """Members with a score each, looked up by name and ordered by (score, name).

    Names are stored as bytes; ``str`` names are accepted and encoded as UTF-8.
    Members with equal scores are ordered by name, bytewise.
    """

    def __init__(self) -> None:
        self._scores: dict[bytes, float] = {}
        self._order: SortedList = SortedList()

    def __len__(self) -> int:
        return len(self._scores)

    def __contains__(self, name: object) -> bool:
        try:
            key = _name_bytes(name)  # type: ignore[arg-type]
        except TypeError:
            return False
        return key in self._scores

    def __iter__(self) -> Iterator[tuple[bytes, float]]:
        """Yield ``(name, score)`` pairs in sorted order."""
        for score, name in self._order:
            yield name, score

    def insert(self, name: bytes | str, score: float) -> bool:
        """Add a member, or move an existing one to a new score.

        Returns True if the member was new, False if it was updated.
        """
        key = _name_bytes(name)
        score = float(score)
        if math.isnan(score):
            raise ValueError("score must not be NaN")
        old = self._scores.get(key)
        if old is not None:
            if old != score:
                self._order.remove((old, key))
                self._order.add((score, key))
                self._scores[key] = score
            return False
        self._scores[key] = score
        self._order.add((score, key))
        return True

    def lookup(self, name: bytes | str) -> float | None:
        """Return the score of a member, or None if it is absent."""
        return self._scores.get(_name_bytes(name))

    def delete(self, name: bytes | str) -> bool:
        """Remove a member. Returns True if it was present."""
        key = _name_bytes(name)
        score = self._scores.pop(key, None)
        if score is None:
            return False
        self._order.remove((score, key))
        return True

    def rank(self, name: bytes | str) -> int | None:
        """Return the zero-based position of a member in sorted order, or None."""
        key = _name_bytes(name)
        score = self._scores.get(key)
        if score is None:
            return None
        return self._order.bisect_left((score, key))

    def query(
        self, score: float, name: bytes | str, offset: int, limit: int
    ) -> list[tuple[bytes, float]]:
        """Return up to ``limit`` ``(name, score)`` pairs.

        The walk starts at the first member at or after ``(score, name)`` and
        moves ``offset`` places from there (backwards if negative). If there
        is no such member, or the offset leaves the set, the result is empty.
        """
        if limit <= 0:
            return []
        start = self._order.bisect_left((float(score), _name_bytes(name)))
        size = len(self._order)
        if start >= size:
            return []
        start += offset
        if not 0 <= start < size:
            return []
        return [(member, value) for value, member in self._order.islice(start, start + limit)]

    def clear(self) -> None:
        """Remove every member."""
        self._scores.clear()
        self._order.clear()