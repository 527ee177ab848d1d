"""
Mood check endpoints.

  POST /mood/questions  -- next batch of unanswered questions (getMoodQuestions)
  POST /mood/responses  -- merge answers into the session's bag (saveMoodResponses)

Answers are keyed by signal key. Empty strings are dropped, not stored.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from services.crew.mood.cache import MoodQuestionCache
from services.crew.mood.responses import MoodService
from services.crew.routers._deps import get_mood_cache, get_store, request_id_of
from services.crew.store import CrewStore

router = APIRouter(prefix="/mood", tags=["mood"])


class MoodQuestionsRequest(BaseModel):
    groupId: str = Field(..., min_length=1)
    sessionId: str = Field(..., min_length=1)
    participantName: Optional[str] = Field(default=None, max_length=80)
    answeredSignals: Optional[dict[str, Any]] = None


class SaveMoodResponsesRequest(BaseModel):
    groupId: str = Field(..., min_length=1)
    sessionId: str = Field(..., min_length=1)
    responses: dict[str, Union[str, int, float]]
    userName: Optional[str] = Field(default=None, max_length=80)


class MoodResponse(BaseModel):
    success: bool
    data: dict
    requestId: str


@router.post("/questions", response_model=MoodResponse)
async def get_mood_questions(
    body: MoodQuestionsRequest,
    request: Request,
    store: CrewStore = Depends(get_store),
    cache: MoodQuestionCache = Depends(get_mood_cache),
) -> MoodResponse:
    payload = await MoodService(store, cache).get_mood_questions(
        body.groupId,
        body.sessionId,
        participant_name=body.participantName,
        answered_signals=body.answeredSignals,
    )
    return MoodResponse(success=True, data=payload, requestId=request_id_of(request))


@router.post("/responses", response_model=MoodResponse)
async def save_mood_responses(
    body: SaveMoodResponsesRequest,
    request: Request,
    store: CrewStore = Depends(get_store),
    cache: MoodQuestionCache = Depends(get_mood_cache),
) -> MoodResponse:
    ack = await MoodService(store, cache).save_mood_responses(
        body.groupId,
        body.sessionId,
        body.responses,
        user_name=body.userName,
    )
    return MoodResponse(success=True, data=ack, requestId=request_id_of(request))
