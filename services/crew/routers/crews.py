"""
Crew onboarding endpoints.

Endpoints:
  POST /crews          -- create a crew for a new host (createCrew)
  POST /crews/resolve  -- look up a crew by join code (resolveInvite)
  POST /crews/join     -- add a new member via join code (joinCrew)

Join codes are case-insensitive. Unknown codes return 404 INVITE_NOT_FOUND,
distinct from internal errors so the UI can show "check the code" messaging.
No auth at this layer.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from services.crew.onboarding.crews import CrewService
from services.crew.onboarding.invites import InviteResolver
from services.crew.routers._deps import get_store, request_id_of
from services.crew.store import CrewStore

router = APIRouter(prefix="/crews", tags=["crews"])


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------


class CreateCrewRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=80)
    # Shape is cleaned server-side; malformed categories degrade to []
    selections: dict[str, Any] = Field(default_factory=dict)


class ResolveInviteRequest(BaseModel):
    code: str = Field(..., min_length=3, max_length=8)


class JoinCrewRequest(BaseModel):
    code: str = Field(..., min_length=3, max_length=8)
    name: Optional[str] = Field(default=None, max_length=80)


class CrewResponse(BaseModel):
    success: bool
    data: dict
    requestId: str


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("", response_model=CrewResponse)
async def create_crew(
    body: CreateCrewRequest,
    request: Request,
    store: CrewStore = Depends(get_store),
) -> CrewResponse:
    """Create user, preference profile, join code and group in one step."""
    created = await CrewService(store).create_crew(body.name, body.selections)
    return CrewResponse(
        success=True,
        data=created.to_payload(),
        requestId=request_id_of(request),
    )


@router.post("/resolve", response_model=CrewResponse)
async def resolve_invite(
    body: ResolveInviteRequest,
    request: Request,
    store: CrewStore = Depends(get_store),
) -> CrewResponse:
    view = await InviteResolver(store).resolve(body.code)
    return CrewResponse(
        success=True,
        data=view.to_payload(),
        requestId=request_id_of(request),
    )


@router.post("/join", response_model=CrewResponse)
async def join_crew(
    body: JoinCrewRequest,
    request: Request,
    store: CrewStore = Depends(get_store),
) -> CrewResponse:
    joined = await CrewService(store).join_crew(body.code, body.name)
    return CrewResponse(
        success=True,
        data=joined.to_payload(),
        requestId=request_id_of(request),
    )
