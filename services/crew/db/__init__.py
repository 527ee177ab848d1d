"""
SQLAlchemy async database module.

Re-exports engine and model utilities for the FastAPI service.
"""

from services.crew.db.engine import create_engine
from services.crew.db.models import (
    Base,
    User,
    UserPreference,
    EventGroup,
    EventGroupParticipant,
    EventGroupPreference,
)

__all__ = [
    "create_engine",
    "Base",
    "User",
    "UserPreference",
    "EventGroup",
    "EventGroupParticipant",
    "EventGroupPreference",
]
