"""
Crew lifecycle: creation by a host and joining by invitees.

create_crew runs in one store transaction:
    user -> preference profile -> join code -> group + organizer participant

If the unique index rejects the allocated code (another request inserted it
between our existence check and our insert) the transaction is rolled back
and the whole creation is retried once with a fresh code.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from services.crew.config import settings
from services.crew.errors import AllocationExhausted
from services.crew.onboarding import snapshot
from services.crew.onboarding.invites import InviteResolver
from services.crew.onboarding.join_codes import CodeAllocator
from services.crew.onboarding.normalizer import clean_selections, normalize
from services.crew.store import (
    ROLE_MEMBER,
    STATUS_ACCEPTED,
    CrewStore,
    JoinCodeTaken,
)

logger = logging.getLogger(__name__)

DEFAULT_DISPLAY_NAME = "City Explorer"
_CREATE_ATTEMPTS = 2


def crew_name_for(display_name: str) -> str:
    """``"Ada Lovelace"`` -> ``"Ada's City Crew"``."""
    parts = display_name.split() or DEFAULT_DISPLAY_NAME.split()
    first_name = parts[0]
    return f"{first_name}'s City Crew"


def join_path_for(join_code: str) -> str:
    return f"/join/{join_code.lower()}"


@dataclass
class CrewCreated:
    group_id: str
    group_name: str
    user_id: str
    join_code: str
    selection_snapshot: dict[str, list[str]] = field(default_factory=dict)

    @property
    def join_path(self) -> str:
        return join_path_for(self.join_code)

    def to_payload(self) -> dict[str, Any]:
        return {
            "groupId": self.group_id,
            "groupName": self.group_name,
            "userId": self.user_id,
            "joinCode": self.join_code,
            "joinPath": self.join_path,
            "selectionSnapshot": self.selection_snapshot,
        }


@dataclass
class CrewJoined:
    group_id: str
    user_id: str
    join_code: str
    role: str
    status: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "groupId": self.group_id,
            "userId": self.user_id,
            "joinCode": self.join_code,
            "role": self.role,
            "status": self.status,
        }


class CrewService:
    def __init__(self, store: CrewStore, allocator: CodeAllocator | None = None) -> None:
        self._store = store
        self._allocator = allocator or CodeAllocator(
            store, max_attempts=settings.join_code_max_attempts
        )

    async def create_crew(
        self, name: str | None, selections: dict[str, Any] | None
    ) -> CrewCreated:
        display_name = (name or "").strip() or DEFAULT_DISPLAY_NAME
        group_name = crew_name_for(display_name)
        cleaned = clean_selections(selections)

        for attempt in range(1, _CREATE_ATTEMPTS + 1):
            try:
                created = await self._create_once(display_name, group_name, cleaned)
            except JoinCodeTaken:
                await self._store.rollback()
                logger.warning("crew_create_code_race attempt=%d", attempt)
                continue
            except Exception:
                await self._store.rollback()
                raise

            logger.info(
                "crew_created group=%s user=%s code=%s",
                created.group_id,
                created.user_id,
                created.join_code,
            )
            return created

        raise AllocationExhausted(
            attempts=_CREATE_ATTEMPTS, length=settings.join_code_length
        )

    async def _create_once(
        self, display_name: str, group_name: str, cleaned: dict[str, list[str]]
    ) -> CrewCreated:
        user_id = await self._store.create_user(display_name)
        await self._store.create_preference(user_id, normalize(cleaned))

        join_code = await self._allocator.allocate(settings.join_code_length)
        group = await self._store.create_group(
            name=group_name,
            join_code=join_code,
            selection_snapshot=snapshot.encode(cleaned),
            creator_id=user_id,
        )
        await self._store.commit()

        return CrewCreated(
            group_id=group.id,
            group_name=group.name or group_name,
            user_id=user_id,
            join_code=join_code,
            selection_snapshot=cleaned,
        )

    async def join_crew(self, code: str, name: str | None = None) -> CrewJoined:
        """Add a new member to the crew behind ``code``. Raises InviteNotFound."""
        group = await InviteResolver(self._store).find(code)

        display_name = (name or "").strip() or None
        user_id = await self._store.create_user(display_name)
        await self._store.add_participant(group.id, user_id, ROLE_MEMBER, STATUS_ACCEPTED)
        await self._store.commit()

        logger.info("crew_joined group=%s user=%s", group.id, user_id)
        return CrewJoined(
            group_id=group.id,
            user_id=user_id,
            join_code=group.join_code,
            role=ROLE_MEMBER,
            status=STATUS_ACCEPTED,
        )
