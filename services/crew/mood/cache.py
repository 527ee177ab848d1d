"""
MoodQuestionCache -- short-lived Redis cache of generated question batches.

Key format:  mood_questions:{group_id}:{session_id}:{answered_digest}
TTL:         settings.mood_question_cache_ttl_s (10 minutes by default)

The digest covers the set of answered signal keys, so a batch is reused only
while the session's answer state is unchanged. Saving responses changes the
digest; no explicit invalidation is needed for correctness, but
``invalidate_session`` is called after a save to drop stale batches early.

Graceful degradation: all operations are no-ops / return None when redis
is None or unreachable, and callers rebuild the batch.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from collections.abc import Iterable
from typing import Any

logger = logging.getLogger(__name__)

_KEY_PREFIX = "mood_questions"
_DIGEST_LEN = 16
_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def _answered_digest(answered_keys: Iterable[str]) -> str:
    joined = "|".join(sorted(answered_keys))
    return hashlib.sha256(joined.encode()).hexdigest()[:_DIGEST_LEN]


def _redis_key(group_id: str, session_id: str, answered_keys: Iterable[str]) -> str:
    return f"{_KEY_PREFIX}:{group_id}:{session_id}:{_answered_digest(answered_keys)}"


def _glob_escape(value: str) -> str:
    return _GLOB_SPECIAL.sub(r"\\\1", value)


class MoodQuestionCache:
    def __init__(self, redis: Any, ttl_seconds: int = 600) -> None:
        self._redis = redis
        self._ttl = ttl_seconds

    async def get(
        self, group_id: str, session_id: str, answered_keys: Iterable[str]
    ) -> dict[str, Any] | None:
        if self._redis is None:
            return None

        key = _redis_key(group_id, session_id, answered_keys)
        try:
            raw = await self._redis.get(key)
        except Exception:
            logger.warning("mood_question_cache get failed: key=%s", key, exc_info=True)
            return None

        if raw is None:
            logger.debug("mood_question_cache miss: key=%s", key)
            return None
        try:
            payload = json.loads(raw)
        except ValueError:
            logger.warning("mood_question_cache corrupt entry: key=%s", key)
            return None
        return payload if isinstance(payload, dict) else None

    async def set(
        self,
        group_id: str,
        session_id: str,
        answered_keys: Iterable[str],
        payload: dict[str, Any],
    ) -> None:
        if self._redis is None:
            return

        key = _redis_key(group_id, session_id, answered_keys)
        try:
            await self._redis.set(key, json.dumps(payload), ex=self._ttl)
        except Exception:
            logger.warning("mood_question_cache set failed: key=%s", key, exc_info=True)

    async def invalidate_session(self, group_id: str, session_id: str) -> None:
        """Drop every cached batch for one (group, session)."""
        if self._redis is None:
            return

        prefix = f"{_KEY_PREFIX}:{_glob_escape(group_id)}:{_glob_escape(session_id)}"
        pattern = f"{prefix}:" + "?" * _DIGEST_LEN
        try:
            keys = [key async for key in self._redis.scan_iter(match=pattern)]
            if keys:
                await self._redis.delete(*keys)
            logger.debug("mood_question_cache invalidated: %s keys=%d", pattern, len(keys))
        except Exception:
            logger.warning(
                "mood_question_cache invalidate failed: pattern=%s", pattern, exc_info=True
            )
