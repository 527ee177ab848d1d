"""
Invite resolution: join code -> public view of the crew.

Codes are case-insensitive for callers ("k7m" and "K7M" resolve the same
group) and stored uppercase.

Host name fallback chain:
  1. the group creator's stored name
  2. the name of the participant holding the ``organizer`` role
  3. the literal "Host"
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from services.crew.errors import InviteNotFound
from services.crew.onboarding import snapshot
from services.crew.onboarding.join_codes import normalize_code
from services.crew.store import ROLE_ORGANIZER, CrewStore, GroupRecord

logger = logging.getLogger(__name__)

DEFAULT_GROUP_NAME = "City Crew"
DEFAULT_HOST_NAME = "Host"
DEFAULT_PARTICIPANT_NAME = "Guest"


@dataclass
class ParticipantView:
    id: str
    name: str
    role: str
    status: str


@dataclass
class GroupView:
    group_id: str
    join_code: str
    group_name: str
    host_name: str
    member_count: int
    participants: list[ParticipantView] = field(default_factory=list)
    selection_snapshot: dict[str, list[str]] = field(default_factory=dict)

    def to_payload(self) -> dict:
        return {
            "groupId": self.group_id,
            "joinCode": self.join_code,
            "groupName": self.group_name,
            "hostName": self.host_name,
            "memberCount": self.member_count,
            "participants": [
                {"id": p.id, "name": p.name, "role": p.role, "status": p.status}
                for p in self.participants
            ],
            "selectionSnapshot": self.selection_snapshot,
        }


def derive_host_name(group: GroupRecord) -> str:
    if group.creator_name:
        return group.creator_name
    organizer = next(
        (p for p in group.participants if p.role == ROLE_ORGANIZER), None
    )
    if organizer is not None and organizer.user_name:
        return organizer.user_name
    return DEFAULT_HOST_NAME


def build_group_view(group: GroupRecord) -> GroupView:
    return GroupView(
        group_id=group.id,
        join_code=group.join_code,
        group_name=group.name or DEFAULT_GROUP_NAME,
        host_name=derive_host_name(group),
        member_count=len(group.participants),
        participants=[
            ParticipantView(
                id=p.user_id,
                name=p.user_name or DEFAULT_PARTICIPANT_NAME,
                role=p.role,
                status=p.status,
            )
            for p in group.participants
        ],
        selection_snapshot=snapshot.decode(group.selection_snapshot),
    )


class InviteResolver:
    def __init__(self, store: CrewStore) -> None:
        self._store = store

    async def find(self, code: str) -> GroupRecord:
        """Look up the group behind a code. Raises InviteNotFound."""
        join_code = normalize_code(code)
        group = await self._store.find_group_by_code(join_code)
        if group is None:
            logger.info("invite_not_found code=%s", join_code)
            raise InviteNotFound()
        return group

    async def resolve(self, code: str) -> GroupView:
        return build_group_view(await self.find(code))
