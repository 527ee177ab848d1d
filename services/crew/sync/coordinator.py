"""
OptimisticSyncCoordinator -- client-side mood-response submission.

One coordinator per (group, session). Answers are buffered locally; on
submit they are written into the cached group view immediately, then sent to
the server. The server outcome either commits (clear buffer, refetch the
view) or rolls back (restore the exact pre-submit view, keep the buffer so
the user can retry).

State machine:

    IDLE --submit(complete)--> PENDING --ack--> COMMITTED --> IDLE
                                  \\--failure--> ROLLED_BACK --> IDLE

Ordering on entering PENDING:
  1. cancel the in-flight read of the group view (a stale read must not land
     on top of the optimistic write)
  2. snapshot the cached view (owned deep copy)
  3. write the merged view into the cache
  4. send the mutation

Only one submission per coordinator can be pending; ``is_submitting`` gates
re-entry.
"""

from __future__ import annotations

import asyncio
import copy
import enum
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from services.crew.errors import MoodSubmissionFailed
from services.crew.mood.questions import MoodQuestion, is_answered
from services.crew.sync.query_cache import QueryCache, group_view_key

logger = logging.getLogger(__name__)

AnswerValue = str | int | float


class SyncState(str, enum.Enum):
    IDLE = "idle"
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class MoodTransport(Protocol):
    async def get_group(self, group_id: str) -> dict[str, Any]: ...

    async def get_mood_questions(
        self,
        group_id: str,
        session_id: str,
        participant_name: str | None = None,
        answered_signals: dict[str, Any] | None = None,
    ) -> dict[str, Any]: ...

    async def save_mood_responses(
        self,
        group_id: str,
        session_id: str,
        responses: dict[str, AnswerValue],
        user_name: str | None = None,
    ) -> dict[str, Any]: ...


@dataclass
class SyncTransaction:
    """Lives exactly as long as one PENDING submission."""

    key: str
    snapshot: Any
    """Deep copy of the cached view at PENDING entry; None if nothing was cached."""
    responses: dict[str, AnswerValue] = field(default_factory=dict)


def merge_mood_responses(
    view: Mapping[str, Any],
    session_id: str,
    responses: Mapping[str, AnswerValue],
    user_name: str | None = None,
) -> dict[str, Any]:
    """
    Return a copy of ``view`` with ``responses`` merged into the mood bag of
    the preference entry for ``session_id``. The rest of the view is kept as is.
    """
    merged = copy.deepcopy(dict(view))
    preferences = merged.get("preferences")
    if not isinstance(preferences, list):
        preferences = []
        merged["preferences"] = preferences

    for entry in preferences:
        if isinstance(entry, dict) and entry.get("sessionId") == session_id:
            bag = entry.get("moodResponses")
            entry["moodResponses"] = {**(bag if isinstance(bag, dict) else {}), **responses}
            break
    else:
        preferences.append(
            {"sessionId": session_id, "userName": user_name, "moodResponses": dict(responses)}
        )
    return merged


class OptimisticSyncCoordinator:
    """
    Usage:
        cache = QueryCache()
        flow = OptimisticSyncCoordinator(cache, api, group_id, session_id,
                                         on_complete=show_results)
        await flow.load_group()
        await flow.load_questions()
        flow.answer("energy-level", "Pumped")
        ...
        await flow.submit()
    """

    def __init__(
        self,
        cache: QueryCache,
        transport: MoodTransport,
        group_id: str,
        session_id: str,
        *,
        participant_name: str | None = None,
        on_complete: Callable[[], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ) -> None:
        self._cache = cache
        self._transport = transport
        self.group_id = group_id
        self.session_id = session_id
        self.participant_name = participant_name
        self._on_complete = on_complete
        self._on_error = on_error

        self.key = group_view_key(group_id)
        self._cache.register(self.key, lambda: transport.get_group(group_id))

        self.questions: list[MoodQuestion] = []
        self.follow_up: str | None = None
        self.answers: dict[str, AnswerValue] = {}
        self.is_submitting = False
        self.finished = False
        self.state = SyncState.IDLE
        self.last_outcome: SyncState | None = None
        self.last_error: BaseException | None = None
        self._transaction: SyncTransaction | None = None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def load_group(self) -> Any:
        return await self._cache.fetch(self.key)

    async def load_questions(self) -> list[MoodQuestion]:
        payload = await self._transport.get_mood_questions(
            self.group_id, self.session_id, self.participant_name
        )
        self.questions = [MoodQuestion.from_payload(q) for q in payload.get("questions") or []]
        self.follow_up = payload.get("followUp")
        return self.questions

    # ------------------------------------------------------------------
    # Answer buffer
    # ------------------------------------------------------------------

    def answer(self, question_id: str, value: AnswerValue) -> None:
        self.answers[question_id] = value

    @property
    def all_answered(self) -> bool:
        return bool(self.questions) and all(
            is_answered(self.answers.get(q.id)) for q in self.questions
        )

    def build_responses(self) -> dict[str, AnswerValue]:
        """Answers keyed by signal key, as the server stores them."""
        return {
            q.signal_key: self.answers[q.id]
            for q in self.questions
            if is_answered(self.answers.get(q.id))
        }

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def _transition(self, state: SyncState) -> None:
        logger.debug(
            "mood_sync %s -> %s group=%s session=%s",
            self.state.value,
            state.value,
            self.group_id,
            self.session_id,
        )
        self.state = state

    async def submit(self) -> bool:
        """
        Submit the buffered answers.

        Returns False without any network call when the answer set is
        incomplete or a submission is already pending. Returns True once the
        server acknowledged.

        Raises:
            MoodSubmissionFailed: the server call failed; the cached view has
                been restored and the answers are still buffered.
        """
        if self.is_submitting or not self.all_answered:
            return False

        responses = self.build_responses()
        self.is_submitting = True
        self._transition(SyncState.PENDING)

        try:
            await self._cache.cancel(self.key)
            self._transaction = SyncTransaction(
                key=self.key,
                snapshot=copy.deepcopy(self._cache.get(self.key)),
                responses=responses,
            )
            self._apply_optimistic(responses)
            await self._transport.save_mood_responses(
                self.group_id, self.session_id, responses, user_name=self.participant_name
            )
        except asyncio.CancelledError as exc:
            self._rollback(exc)
            raise
        except Exception as exc:
            self._rollback(exc)
            raise MoodSubmissionFailed() from exc

        await self._commit()
        return True

    def _apply_optimistic(self, responses: dict[str, AnswerValue]) -> None:
        current = self._cache.get(self.key)
        if current is None:
            # Nothing on screen to update; the post-commit refetch fills it
            return
        self._cache.set(
            self.key,
            merge_mood_responses(current, self.session_id, responses, self.participant_name),
        )

    def _rollback(self, exc: BaseException) -> None:
        transaction = self._transaction
        if transaction is not None:
            if transaction.snapshot is None:
                self._cache.remove(transaction.key)
            else:
                self._cache.set(transaction.key, transaction.snapshot)

        self._transaction = None
        self.is_submitting = False
        self.last_error = exc
        self.last_outcome = SyncState.ROLLED_BACK
        self._transition(SyncState.ROLLED_BACK)
        self._transition(SyncState.IDLE)

        logger.warning(
            "mood_sync rolled back group=%s session=%s: %s",
            self.group_id,
            self.session_id,
            exc,
        )
        if self._on_error is not None and isinstance(exc, Exception):
            self._on_error(exc)

    async def _commit(self) -> None:
        self.answers = {}
        self.is_submitting = False
        self._transaction = None
        self.last_error = None
        self.last_outcome = SyncState.COMMITTED
        self._transition(SyncState.COMMITTED)
        self._transition(SyncState.IDLE)

        try:
            await self._cache.invalidate(self.key)
        except Exception:
            # The optimistic copy stays until the next successful read
            logger.warning(
                "mood_sync refetch failed group=%s", self.group_id, exc_info=True
            )

        try:
            remaining = await self.load_questions()
        except Exception:
            logger.warning(
                "mood_sync question refresh failed group=%s session=%s",
                self.group_id,
                self.session_id,
                exc_info=True,
            )
            return

        if not remaining:
            self.finished = True
            logger.info(
                "mood_sync flow finished group=%s session=%s", self.group_id, self.session_id
            )
            if self._on_complete is not None:
                self._on_complete()
