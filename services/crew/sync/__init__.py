"""
Client-side synchronization for the mood question flow.

QueryCache
    Shared cache of server resources (group views), with cancel and
    invalidate per key.

OptimisticSyncCoordinator
    Per-(group, session) state machine that writes answers into the cache
    before the server confirms them and rolls back on failure.

CrewApiClient
    httpx transport for the crew API.

Usage:
    from services.crew.sync import CrewApiClient, OptimisticSyncCoordinator, QueryCache
"""

from __future__ import annotations

from services.crew.sync.client import CrewApiClient, CrewApiError
from services.crew.sync.coordinator import (
    OptimisticSyncCoordinator,
    SyncState,
    SyncTransaction,
)
from services.crew.sync.query_cache import QueryCache, group_view_key

__all__ = [
    "CrewApiClient",
    "CrewApiError",
    "OptimisticSyncCoordinator",
    "QueryCache",
    "SyncState",
    "SyncTransaction",
    "group_view_key",
]
