"""
SQLAlchemy DeclarativeBase models for the crew tables.

Column names use camelCase to match the actual PostgreSQL column names
written by the web app's migrations. SA does NOT convert them, so the
Python attributes are camelCase too.

IMPORTANT: These models are NOT used for migrations. The web app owns the
DDL; these are mirrors of the subset this service reads and writes.
"""

import uuid as _uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, Integer, JSON, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# create_type=False: migrations own the DDL, SA just reads.
ParticipantRoleEnum = Enum("organizer", "member", name="ParticipantRole", create_type=False)
ParticipantStatusEnum = Enum("accepted", "pending", name="ParticipantStatus", create_type=False)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(_uuid.uuid4()))
    name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    avatarUrl: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    createdAt: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updatedAt: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class UserPreference(Base):
    """Canonical taste profile, written once at crew creation."""

    __tablename__ = "user_preferences"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(_uuid.uuid4()))
    userId: Mapped[str] = mapped_column(String)
    dietaryRestrictions: Mapped[list[str]] = mapped_column(ARRAY(String), server_default="{}")
    allergies: Mapped[list[str]] = mapped_column(ARRAY(String), server_default="{}")
    cuisinePreferences: Mapped[list[str]] = mapped_column(ARRAY(String), server_default="{}")
    activityTypes: Mapped[list[str]] = mapped_column(ARRAY(String), server_default="{}")
    preferredTime: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    preferredDay: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    budgetRange: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    groupSizePreference: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    socialPreference: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    preferredLocations: Mapped[list[str]] = mapped_column(ARRAY(String), server_default="{}")
    maxTravelDistance: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    experienceIntensity: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    interests: Mapped[list[str]] = mapped_column(ARRAY(String), server_default="{}")
    createdAt: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updatedAt: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class EventGroup(Base):
    __tablename__ = "event_groups"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(_uuid.uuid4()))
    name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    # Unique index is the backstop for the allocate-then-insert race
    joinCode: Mapped[str] = mapped_column(String, unique=True)
    selectionSnapshot: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    createdById: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, default="collecting_preferences")
    createdAt: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updatedAt: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class EventGroupParticipant(Base):
    __tablename__ = "event_group_participants"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(_uuid.uuid4()))
    groupId: Mapped[str] = mapped_column(String)
    userId: Mapped[str] = mapped_column(String)
    role: Mapped[str] = mapped_column(ParticipantRoleEnum)
    status: Mapped[str] = mapped_column(ParticipantStatusEnum)
    createdAt: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class EventGroupPreference(Base):
    """Per-session preference entry; holds the mood-response bag."""

    __tablename__ = "event_group_preferences"
    __table_args__ = (UniqueConstraint("groupId", "sessionId"),)

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(_uuid.uuid4()))
    groupId: Mapped[str] = mapped_column(String)
    userId: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    sessionId: Mapped[str] = mapped_column(String)
    userName: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    moodResponses: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    createdAt: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updatedAt: Mapped[datetime] = mapped_column(DateTime(timezone=True))
