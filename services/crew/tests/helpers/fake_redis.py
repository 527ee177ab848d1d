"""
FakeRedis -- dict-backed minimal implementation of the operations used by
MoodQuestionCache: get, set (with ex), delete, scan_iter.
"""

from __future__ import annotations

import fnmatch
import re


class FakeRedis:
    def __init__(self) -> None:
        self._store: dict[str, str] = {}
        self._ttls: dict[str, int] = {}

    async def get(self, key: str) -> str | None:
        return self._store.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> None:
        self._store[key] = value
        if ex is not None:
            self._ttls[key] = ex

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._store.pop(key, None) is not None:
                removed += 1
            self._ttls.pop(key, None)
        return removed

    async def scan_iter(self, match: str = "*"):
        # Redis escapes with a backslash; fnmatch wants a one-char class
        pattern = re.sub(r"\\(.)", lambda m: f"[{m.group(1)}]", match)
        for key in list(self._store):
            if fnmatch.fnmatchcase(key, pattern):
                yield key

    def keys(self) -> list[str]:
        return list(self._store)

    def ttl_of(self, key: str) -> int | None:
        return self._ttls.get(key)


class BrokenRedis:
    """Every call raises, like a Redis that went away after startup."""

    async def get(self, key: str):
        raise ConnectionError("redis down")

    async def set(self, key: str, value: str, ex: int | None = None):
        raise ConnectionError("redis down")

    async def delete(self, *keys: str):
        raise ConnectionError("redis down")

    async def scan_iter(self, match: str = "*"):
        raise ConnectionError("redis down")
        yield  # pragma: no cover
