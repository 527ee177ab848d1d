"""
Server side of the mood question flow.

    get_mood_questions   next unanswered batch for a (group, session)
    save_mood_responses  merge a batch of answers into the session's bag
    group_state          the group view clients cache and refetch
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from services.crew.config import settings
from services.crew.errors import GroupNotFound
from services.crew.mood.cache import MoodQuestionCache
from services.crew.mood.questions import (
    answered_signal_keys,
    follow_up_for,
    is_answered,
    select_questions,
)
from services.crew.onboarding.invites import build_group_view
from services.crew.store import CrewStore, GroupRecord

logger = logging.getLogger(__name__)


class MoodService:
    def __init__(self, store: CrewStore, cache: MoodQuestionCache | None = None) -> None:
        self._store = store
        self._cache = cache or MoodQuestionCache(None)

    async def _require_group(self, group_id: str) -> GroupRecord:
        group = await self._store.find_group(group_id)
        if group is None:
            raise GroupNotFound()
        return group

    async def get_mood_questions(
        self,
        group_id: str,
        session_id: str,
        participant_name: str | None = None,
        answered_signals: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Return ``{"questions": [...], "followUp": str?}``.

        When ``answered_signals`` is None the session's stored responses are
        used, so a client can resume the flow without local state.
        """
        await self._require_group(group_id)

        if answered_signals is None:
            entry = await self._store.find_preference_entry(group_id, session_id)
            answered_signals = entry.mood_responses if entry is not None else {}

        answered = answered_signal_keys(answered_signals)

        # The batch is cached without the greeting, which depends on the caller
        batch = await self._cache.get(group_id, session_id, answered)
        if batch is None:
            questions = select_questions(
                answered_signals,
                per_batch=settings.mood_questions_per_batch,
                max_questions=settings.mood_max_questions,
            )
            batch = {"questions": [q.to_payload() for q in questions]}
            await self._cache.set(group_id, session_id, answered, batch)
            logger.info(
                "mood_questions group=%s session=%s answered=%d served=%d",
                group_id,
                session_id,
                len(answered),
                len(questions),
            )

        payload: dict[str, Any] = {"questions": list(batch.get("questions") or [])}
        if payload["questions"]:
            payload["followUp"] = follow_up_for(participant_name, len(answered))
        return payload

    async def save_mood_responses(
        self,
        group_id: str,
        session_id: str,
        responses: Mapping[str, str | int | float],
        user_name: str | None = None,
    ) -> dict[str, Any]:
        await self._require_group(group_id)

        accepted = {key: value for key, value in responses.items() if is_answered(value)}
        try:
            await self._store.upsert_mood_responses(
                group_id, session_id, accepted, user_name=user_name
            )
            await self._store.commit()
        except Exception:
            await self._store.rollback()
            raise

        await self._cache.invalidate_session(group_id, session_id)
        logger.info(
            "mood_responses_saved group=%s session=%s keys=%d",
            group_id,
            session_id,
            len(accepted),
        )
        return {"groupId": group_id, "sessionId": session_id, "saved": len(accepted)}

    async def group_state(self, group_id: str) -> dict[str, Any]:
        group = await self._require_group(group_id)
        entries = await self._store.list_preference_entries(group_id)

        payload = build_group_view(group).to_payload()
        payload["preferences"] = [
            {
                "sessionId": entry.session_id,
                "userName": entry.user_name,
                "moodResponses": dict(entry.mood_responses),
            }
            for entry in entries
        ]
        return payload
