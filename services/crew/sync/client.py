"""
CrewApiClient -- async HTTP client for the crew API.

Unwraps the ``{"success", "data" | "error", "requestId"}`` envelope and maps
error codes back onto the domain errors, so client code handles
InviteNotFound the same way whether it runs in-process or over HTTP.

Timeouts come from httpx (settings.client_timeout_s); a timeout surfaces as
``httpx.TimeoutException`` and callers treat it like any other failure.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from services.crew.config import settings
from services.crew.errors import CrewError, GroupNotFound, InviteNotFound

logger = logging.getLogger(__name__)


class CrewApiError(CrewError):
    """Non-2xx response that does not map to a specific domain error."""

    def __init__(self, status_code: int, code: str, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code


_ERRORS_BY_CODE: dict[str, type[CrewError]] = {
    InviteNotFound.code: InviteNotFound,
    GroupNotFound.code: GroupNotFound,
}


def _raise_for_envelope(response: httpx.Response) -> None:
    if response.is_success:
        return

    code, message = "HTTP_ERROR", response.reason_phrase
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error")
        if not isinstance(error, dict):
            detail = body.get("detail")
            error = detail.get("error") if isinstance(detail, dict) else None
        if isinstance(error, dict):
            code = error.get("code", code)
            message = error.get("message", message)

    error_cls = _ERRORS_BY_CODE.get(code)
    if error_cls is not None:
        raise error_cls(message)
    raise CrewApiError(response.status_code, code, message)


class CrewApiClient:
    """
    Usage:
        async with CrewApiClient("https://crew.example.com") as api:
            crew = await api.create_crew("Ada", {"vibe": ["Cozy"]})
            view = await api.resolve_invite(crew["joinCode"])
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout if timeout is not None else settings.client_timeout_s,
            transport=transport,
        )

    async def __aenter__(self) -> CrewApiClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self._client.request(method, path, **kwargs)
        logger.debug("crew_api %s %s -> %d", method, path, response.status_code)
        _raise_for_envelope(response)
        return response.json().get("data")

    async def create_crew(
        self, name: str | None, selections: dict[str, list[str]]
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"selections": selections}
        if name is not None:
            body["name"] = name
        return await self._request("POST", "/crews", json=body)

    async def resolve_invite(self, code: str) -> dict[str, Any]:
        return await self._request("POST", "/crews/resolve", json={"code": code})

    async def join_crew(self, code: str, name: str | None = None) -> dict[str, Any]:
        return await self._request("POST", "/crews/join", json={"code": code, "name": name})

    async def get_group(self, group_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/groups/{group_id}")

    async def get_mood_questions(
        self,
        group_id: str,
        session_id: str,
        participant_name: str | None = None,
        answered_signals: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"groupId": group_id, "sessionId": session_id}
        if participant_name is not None:
            body["participantName"] = participant_name
        if answered_signals is not None:
            body["answeredSignals"] = answered_signals
        return await self._request("POST", "/mood/questions", json=body)

    async def save_mood_responses(
        self,
        group_id: str,
        session_id: str,
        responses: dict[str, str | int | float],
        user_name: str | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "groupId": group_id,
            "sessionId": session_id,
            "responses": responses,
        }
        if user_name is not None:
            body["userName"] = user_name
        return await self._request("POST", "/mood/responses", json=body)
