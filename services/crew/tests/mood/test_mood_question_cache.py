"""
MoodQuestionCache against a dict-backed FakeRedis.

Cache failures never surface to callers.
"""

from services.crew.mood.cache import MoodQuestionCache, _redis_key
from services.crew.tests.helpers.fake_redis import BrokenRedis

PAYLOAD = {"questions": [{"id": "energy-level", "signalKey": "energyLevel"}]}


class TestMoodQuestionCache:
    async def test_miss_then_hit(self, fake_redis):
        cache = MoodQuestionCache(fake_redis, ttl_seconds=600)
        assert await cache.get("g1", "s1", set()) is None

        await cache.set("g1", "s1", set(), PAYLOAD)
        assert await cache.get("g1", "s1", set()) == PAYLOAD

    async def test_ttl_is_applied(self, fake_redis):
        cache = MoodQuestionCache(fake_redis, ttl_seconds=600)
        await cache.set("g1", "s1", {"energyLevel"}, PAYLOAD)
        key = _redis_key("g1", "s1", {"energyLevel"})
        assert fake_redis.ttl_of(key) == 600

    async def test_key_depends_on_answered_set_not_order(self):
        assert _redis_key("g", "s", ["a", "b"]) == _redis_key("g", "s", ["b", "a"])
        assert _redis_key("g", "s", ["a"]) != _redis_key("g", "s", ["a", "b"])

    async def test_answer_change_misses(self, fake_redis):
        cache = MoodQuestionCache(fake_redis)
        await cache.set("g1", "s1", set(), PAYLOAD)
        assert await cache.get("g1", "s1", {"energyLevel"}) is None

    async def test_invalidate_session_only_touches_that_session(self, fake_redis):
        cache = MoodQuestionCache(fake_redis)
        await cache.set("g1", "s1", set(), PAYLOAD)
        await cache.set("g1", "s1", {"energyLevel"}, PAYLOAD)
        await cache.set("g1", "s2", set(), PAYLOAD)

        await cache.invalidate_session("g1", "s1")

        assert fake_redis.keys() == [_redis_key("g1", "s2", set())]

    async def test_invalidate_treats_glob_characters_literally(self, fake_redis):
        cache = MoodQuestionCache(fake_redis)
        await cache.set("g1", "s1", set(), PAYLOAD)
        await cache.set("g1", "s[1]", set(), PAYLOAD)
        await cache.set("g1", "s*", set(), PAYLOAD)

        await cache.invalidate_session("g1", "s*")

        assert sorted(fake_redis.keys()) == sorted(
            [_redis_key("g1", "s1", set()), _redis_key("g1", "s[1]", set())]
        )

    async def test_invalidate_does_not_reach_longer_session_ids(self, fake_redis):
        cache = MoodQuestionCache(fake_redis)
        await cache.set("g1", "s1", set(), PAYLOAD)
        await cache.set("g1", "s1:extra", set(), PAYLOAD)

        await cache.invalidate_session("g1", "s1")

        assert fake_redis.keys() == [_redis_key("g1", "s1:extra", set())]

    async def test_corrupt_entry_is_a_miss(self, fake_redis):
        cache = MoodQuestionCache(fake_redis)
        await fake_redis.set(_redis_key("g1", "s1", set()), "{broken")
        assert await cache.get("g1", "s1", set()) is None


class TestDegradation:
    async def test_no_redis_is_noop(self):
        cache = MoodQuestionCache(None)
        await cache.set("g1", "s1", set(), PAYLOAD)
        assert await cache.get("g1", "s1", set()) is None
        await cache.invalidate_session("g1", "s1")

    async def test_broken_redis_is_swallowed(self):
        cache = MoodQuestionCache(BrokenRedis())
        assert await cache.get("g1", "s1", set()) is None
        await cache.set("g1", "s1", set(), PAYLOAD)
        await cache.invalidate_session("g1", "s1")
