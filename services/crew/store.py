"""
CrewStore -- the persistence seam for crews, users, preferences and participants.

Domain code (allocation, invite resolution, crew creation, mood responses)
talks to the ``CrewStore`` protocol only and receives plain records, never
ORM rows. ``SACrewStore`` is the production implementation over an SA
AsyncSession; tests use an in-memory fake with the same surface.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

from sqlalchemy import and_, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from services.crew.db.models import (
    EventGroup,
    EventGroupParticipant,
    EventGroupPreference,
    User,
    UserPreference,
)
from services.crew.onboarding.normalizer import PreferenceRecord

logger = logging.getLogger(__name__)

ROLE_ORGANIZER = "organizer"
ROLE_MEMBER = "member"
STATUS_ACCEPTED = "accepted"
STATUS_PENDING = "pending"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass
class ParticipantRecord:
    user_id: str
    role: str
    status: str
    user_name: str | None = None


@dataclass
class GroupRecord:
    id: str
    name: str | None
    join_code: str
    selection_snapshot: Any
    """Raw column value. Only ever read through snapshot.decode()."""
    created_by_id: str | None = None
    creator_name: str | None = None
    participants: list[ParticipantRecord] = field(default_factory=list)


@dataclass
class PreferenceEntry:
    group_id: str
    session_id: str
    user_name: str | None = None
    mood_responses: dict[str, Any] = field(default_factory=dict)


class JoinCodeTaken(Exception):
    """The unique index rejected a join code another request inserted first."""


class CrewStore(Protocol):
    async def group_code_exists(self, join_code: str) -> bool: ...

    async def find_group_by_code(self, join_code: str) -> GroupRecord | None: ...

    async def find_group(self, group_id: str) -> GroupRecord | None: ...

    async def create_user(self, name: str | None) -> str: ...

    async def create_preference(self, user_id: str, record: PreferenceRecord) -> None: ...

    async def create_group(
        self,
        *,
        name: str,
        join_code: str,
        selection_snapshot: dict[str, list[str]],
        creator_id: str,
    ) -> GroupRecord: ...

    async def add_participant(
        self, group_id: str, user_id: str, role: str, status: str
    ) -> ParticipantRecord: ...

    async def list_preference_entries(self, group_id: str) -> list[PreferenceEntry]: ...

    async def find_preference_entry(
        self, group_id: str, session_id: str
    ) -> PreferenceEntry | None: ...

    async def upsert_mood_responses(
        self,
        group_id: str,
        session_id: str,
        responses: dict[str, Any],
        user_name: str | None = None,
    ) -> PreferenceEntry: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...


# ---------------------------------------------------------------------------
# SQLAlchemy implementation
# ---------------------------------------------------------------------------


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SACrewStore:
    """CrewStore over a single AsyncSession. The caller owns commit/rollback."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def group_code_exists(self, join_code: str) -> bool:
        stmt = select(EventGroup.id).where(EventGroup.joinCode == join_code)
        result = await self._session.execute(stmt)
        return result.first() is not None

    async def find_group_by_code(self, join_code: str) -> GroupRecord | None:
        stmt = select(EventGroup).where(EventGroup.joinCode == join_code)
        result = await self._session.execute(stmt)
        group = result.scalars().first()
        if group is None:
            return None
        return await self._hydrate(group)

    async def find_group(self, group_id: str) -> GroupRecord | None:
        stmt = select(EventGroup).where(EventGroup.id == group_id)
        result = await self._session.execute(stmt)
        group = result.scalars().first()
        if group is None:
            return None
        return await self._hydrate(group)

    async def _hydrate(self, group: EventGroup) -> GroupRecord:
        creator_name = None
        if group.createdById:
            creator = await self._session.get(User, group.createdById)
            creator_name = creator.name if creator is not None else None

        stmt = (
            select(EventGroupParticipant, User.name)
            .outerjoin(User, User.id == EventGroupParticipant.userId)
            .where(EventGroupParticipant.groupId == group.id)
            .order_by(EventGroupParticipant.createdAt.asc())
        )
        result = await self._session.execute(stmt)
        participants = [
            ParticipantRecord(
                user_id=p.userId,
                role=p.role,
                status=p.status,
                user_name=user_name,
            )
            for p, user_name in result.all()
        ]

        return GroupRecord(
            id=group.id,
            name=group.name,
            join_code=group.joinCode,
            selection_snapshot=group.selectionSnapshot,
            created_by_id=group.createdById,
            creator_name=creator_name,
            participants=participants,
        )

    async def create_user(self, name: str | None) -> str:
        user_id = str(uuid.uuid4())
        now = _now()
        await self._session.execute(
            insert(User).values(id=user_id, name=name, createdAt=now, updatedAt=now)
        )
        return user_id

    async def create_preference(self, user_id: str, record: PreferenceRecord) -> None:
        now = _now()
        await self._session.execute(
            insert(UserPreference).values(
                id=str(uuid.uuid4()),
                userId=user_id,
                createdAt=now,
                updatedAt=now,
                **record.to_columns(),
            )
        )

    async def create_group(
        self,
        *,
        name: str,
        join_code: str,
        selection_snapshot: dict[str, list[str]],
        creator_id: str,
    ) -> GroupRecord:
        group_id = str(uuid.uuid4())
        now = _now()
        try:
            await self._session.execute(
                insert(EventGroup).values(
                    id=group_id,
                    name=name,
                    joinCode=join_code,
                    selectionSnapshot=selection_snapshot,
                    createdById=creator_id,
                    status="collecting_preferences",
                    createdAt=now,
                    updatedAt=now,
                )
            )
        except IntegrityError as exc:
            logger.info("join_code_conflict code=%s", join_code)
            raise JoinCodeTaken(join_code) from exc

        organizer = await self.add_participant(
            group_id, creator_id, ROLE_ORGANIZER, STATUS_ACCEPTED
        )
        return GroupRecord(
            id=group_id,
            name=name,
            join_code=join_code,
            selection_snapshot=selection_snapshot,
            created_by_id=creator_id,
            participants=[organizer],
        )

    async def add_participant(
        self, group_id: str, user_id: str, role: str, status: str
    ) -> ParticipantRecord:
        await self._session.execute(
            insert(EventGroupParticipant).values(
                id=str(uuid.uuid4()),
                groupId=group_id,
                userId=user_id,
                role=role,
                status=status,
                createdAt=_now(),
            )
        )
        return ParticipantRecord(user_id=user_id, role=role, status=status)

    async def list_preference_entries(self, group_id: str) -> list[PreferenceEntry]:
        stmt = (
            select(EventGroupPreference)
            .where(EventGroupPreference.groupId == group_id)
            .order_by(EventGroupPreference.createdAt.asc())
        )
        result = await self._session.execute(stmt)
        return [_to_entry(row) for row in result.scalars().all()]

    async def find_preference_entry(
        self, group_id: str, session_id: str
    ) -> PreferenceEntry | None:
        row = await self._find_preference_row(group_id, session_id)
        return _to_entry(row) if row is not None else None

    async def _find_preference_row(
        self, group_id: str, session_id: str
    ) -> EventGroupPreference | None:
        stmt = select(EventGroupPreference).where(
            and_(
                EventGroupPreference.groupId == group_id,
                EventGroupPreference.sessionId == session_id,
            )
        )
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def upsert_mood_responses(
        self,
        group_id: str,
        session_id: str,
        responses: dict[str, Any],
        user_name: str | None = None,
    ) -> PreferenceEntry:
        now = _now()
        existing = await self._find_preference_row(group_id, session_id)

        if existing is None:
            merged = dict(responses)
            await self._session.execute(
                insert(EventGroupPreference).values(
                    id=str(uuid.uuid4()),
                    groupId=group_id,
                    sessionId=session_id,
                    userName=user_name,
                    moodResponses=merged,
                    createdAt=now,
                    updatedAt=now,
                )
            )
            return PreferenceEntry(group_id, session_id, user_name, merged)

        merged = {**(existing.moodResponses or {}), **responses}
        values: dict[str, Any] = {"moodResponses": merged, "updatedAt": now}
        if user_name:
            values["userName"] = user_name
        await self._session.execute(
            update(EventGroupPreference)
            .where(EventGroupPreference.id == existing.id)
            .values(**values)
        )
        return PreferenceEntry(
            group_id, session_id, user_name or existing.userName, merged
        )

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()


def _to_entry(row: EventGroupPreference) -> PreferenceEntry:
    responses = row.moodResponses if isinstance(row.moodResponses, dict) else {}
    return PreferenceEntry(
        group_id=row.groupId,
        session_id=row.sessionId,
        user_name=row.userName,
        mood_responses=dict(responses),
    )
