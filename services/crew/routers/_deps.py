"""Shared dependencies for the crew routers."""

import uuid

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from services.crew.config import settings
from services.crew.mood.cache import MoodQuestionCache
from services.crew.store import SACrewStore


async def get_db(request: Request):
    """Get an SA AsyncSession from app state's session factory."""
    factory = getattr(request.app.state, "db_session_factory", None)
    if factory is None:
        raise HTTPException(status_code=503, detail="Database unavailable")
    async with factory() as session:
        yield session


async def get_store(session: AsyncSession = Depends(get_db)) -> SACrewStore:
    return SACrewStore(session)


def get_mood_cache(request: Request) -> MoodQuestionCache:
    return MoodQuestionCache(
        getattr(request.app.state, "redis", None),
        ttl_seconds=settings.mood_question_cache_ttl_s,
    )


def request_id_of(request: Request) -> str:
    return getattr(request.state, "request_id", str(uuid.uuid4()))
