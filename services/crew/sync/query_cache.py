"""
QueryCache -- client-side cache of server resources keyed by resource id.

One instance is shared by every coordinator working on the same group and is
passed in explicitly; there is no module-level cache.

Operations:
    get / set / remove   synchronous reads and writes of cached values
    fetch                run (or join) the read for a key and store the result
    cancel               abort the in-flight read for a key; its result is dropped
    invalidate           cancel + fresh read, so the cache converges on server truth

Everything runs on one event loop. A read writes its result in the same step
that its fetcher returns, so once ``cancel`` has run no stale result can land
after a later optimistic ``set``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[Any]]


def group_view_key(group_id: str) -> str:
    return f"group:{group_id}"


class QueryCache:
    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._fetchers: dict[str, Fetcher] = {}
        self._inflight: dict[str, asyncio.Task] = {}

    # ------------------------------------------------------------------
    # Synchronous access
    # ------------------------------------------------------------------

    def get(self, key: str) -> Any | None:
        return self._data.get(key)

    def has(self, key: str) -> bool:
        return key in self._data

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def register(self, key: str, fetcher: Fetcher) -> None:
        """Remember how to read ``key`` so invalidate() can refetch it."""
        self._fetchers[key] = fetcher

    def is_fetching(self, key: str) -> bool:
        task = self._inflight.get(key)
        return task is not None and not task.done()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _run(self, key: str, fetcher: Fetcher) -> Any:
        value = await fetcher()
        self._data[key] = value
        return value

    async def fetch(self, key: str, fetcher: Fetcher | None = None) -> Any:
        """
        Read ``key`` from the server and cache the result.

        Concurrent fetches of the same key share one in-flight read. If that
        read is cancelled through ``cancel()``, callers get the currently
        cached value instead of the cancelled result.
        """
        if fetcher is not None:
            self._fetchers[key] = fetcher
        fetcher = self._fetchers.get(key)
        if fetcher is None:
            raise KeyError(f"no fetcher registered for {key!r}")

        task = self._inflight.get(key)
        if task is None or task.done():
            task = asyncio.create_task(self._run(key, fetcher))
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._clear_inflight(k, t))

        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                # Read was superseded by a write; serve what is cached now
                return self._data.get(key)
            raise

    def _clear_inflight(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def cancel(self, key: str) -> bool:
        """Cancel the in-flight read for ``key``. Returns True if one was running."""
        task = self._inflight.get(key)
        if task is None or task.done():
            return False

        task.cancel()
        # wait() does not re-raise the task's CancelledError into this caller
        await asyncio.wait({task})
        logger.debug("query_cache read cancelled: key=%s", key)
        return True

    async def invalidate(self, key: str) -> Any | None:
        """Force a fresh read of ``key``. No-op without a registered fetcher."""
        if key not in self._fetchers:
            return None
        await self.cancel(key)
        return await self.fetch(key)
