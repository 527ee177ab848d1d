"""
Group view endpoint.

  GET /groups/{group_id}  -- group, participants and per-session mood bags

This is the resource clients cache and refetch after saving mood responses.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from services.crew.mood.responses import MoodService
from services.crew.routers._deps import get_store, request_id_of
from services.crew.store import CrewStore

router = APIRouter(prefix="/groups", tags=["groups"])


class GroupStateResponse(BaseModel):
    success: bool
    data: dict
    requestId: str


@router.get("/{group_id}", response_model=GroupStateResponse)
async def get_group(
    group_id: str,
    request: Request,
    store: CrewStore = Depends(get_store),
) -> GroupStateResponse:
    state = await MoodService(store).group_state(group_id)
    return GroupStateResponse(
        success=True,
        data=state,
        requestId=request_id_of(request),
    )
