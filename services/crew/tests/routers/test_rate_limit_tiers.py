"""Rate limiter tiers: invite lookups are throttled harder than everything else."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from services.crew import main as main_module
from services.crew.config import settings
from services.crew.middleware.rate_limit import _get_rate_limit


@pytest.fixture
def limited_redis(mock_redis):
    main_module._redis_holder["client"] = mock_redis
    yield mock_redis
    main_module._redis_holder["client"] = None


def window_count(redis, count):
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[None, count, None, None])
    redis.pipeline = MagicMock(return_value=pipe)


class TestTierSelection:
    @pytest.mark.parametrize("path", ["/crews/resolve", "/crews/join"])
    def test_invite_paths(self, path):
        assert _get_rate_limit(path) == (settings.rate_limit_invite_per_min, "invite")

    @pytest.mark.parametrize("path", ["/crews", "/mood/questions", "/groups/g1"])
    def test_everything_else_is_anon(self, path):
        assert _get_rate_limit(path) == (settings.rate_limit_anon_per_min, "anon")


class TestMiddleware:
    async def test_headers_on_allowed_request(self, client, fake_store, limited_redis):
        fake_store.seed_group("K7M")
        resp = await client.post("/crews/resolve", json={"code": "K7M"})
        assert resp.status_code == 200
        assert resp.headers["X-RateLimit-Limit"] == str(settings.rate_limit_invite_per_min)

    async def test_invite_tier_blocks_at_its_limit(self, client, limited_redis):
        window_count(limited_redis, settings.rate_limit_invite_per_min)
        resp = await client.post("/crews/resolve", json={"code": "K7M"})

        assert resp.status_code == 429
        assert resp.headers["Retry-After"] == "60"
        assert resp.json()["error"]["code"] == "RATE_LIMITED"

    async def test_same_count_passes_anon_tier(self, client, limited_redis):
        window_count(limited_redis, settings.rate_limit_invite_per_min)
        resp = await client.post("/crews", json={"name": "Ada"})
        assert resp.status_code == 200

    async def test_health_is_exempt(self, client, limited_redis):
        window_count(limited_redis, 10_000)
        resp = await client.get("/health")
        assert resp.status_code == 200

    async def test_redis_failure_passes_through(self, client, fake_store, limited_redis):
        pipe = MagicMock()
        pipe.execute = AsyncMock(side_effect=ConnectionError("redis down"))
        limited_redis.pipeline = MagicMock(return_value=pipe)
        fake_store.seed_group("K7M")

        resp = await client.post("/crews/resolve", json={"code": "K7M"})
        assert resp.status_code == 200
