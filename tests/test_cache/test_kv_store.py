"""
Tests for interview_recommender/cache/kv_store.py.

What we test
------------
InMemoryKeyValueStore:
  - get() returns what setex() stored, until the TTL elapses.
  - Reads at or past expires_at behave as absent and drop the entry.
  - setex() replaces an existing entry and restarts its TTL.
  - Non-positive TTLs are rejected.

RedisKeyValueStore:
  - Delegates GET / SETEX to the client.
  - RedisError becomes StoreFailureError("cache").
"""

from __future__ import annotations

import asyncio

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from interview_recommender.cache.kv_store import InMemoryKeyValueStore, RedisKeyValueStore
from interview_recommender.errors import StoreFailureError


class TestInMemoryKeyValueStore:
    def test_get_missing_is_none(self, manual_clock):
        store = InMemoryKeyValueStore(clock=manual_clock)
        assert asyncio.run(store.get("nope")) is None

    def test_value_lives_until_ttl(self, manual_clock):
        store = InMemoryKeyValueStore(clock=manual_clock)
        asyncio.run(store.setex("k", 60, "v"))

        manual_clock.advance(59.9)
        assert asyncio.run(store.get("k")) == "v"

        manual_clock.advance(0.1)
        assert asyncio.run(store.get("k")) is None

    def test_expired_entry_is_dropped(self, manual_clock):
        store = InMemoryKeyValueStore(clock=manual_clock)
        asyncio.run(store.setex("k", 10, "v"))
        assert len(store) == 1

        manual_clock.advance(11)
        asyncio.run(store.get("k"))
        assert len(store) == 0

    def test_setex_replaces_and_restarts_ttl(self, manual_clock):
        store = InMemoryKeyValueStore(clock=manual_clock)
        asyncio.run(store.setex("k", 10, "old"))
        manual_clock.advance(8)
        asyncio.run(store.setex("k", 10, "new"))
        manual_clock.advance(8)
        assert asyncio.run(store.get("k")) == "new"

    @pytest.mark.parametrize("ttl", [0, -1])
    def test_non_positive_ttl_rejected(self, ttl, manual_clock):
        store = InMemoryKeyValueStore(clock=manual_clock)
        with pytest.raises(ValueError, match="ttl_seconds"):
            asyncio.run(store.setex("k", ttl, "v"))


class _FakeRedis:
    def __init__(self, fail: bool = False) -> None:
        self.data: dict[str, tuple[int, str]] = {}
        self.fail = fail
        self.closed = False

    async def get(self, key):
        if self.fail:
            raise RedisConnectionError("refused")
        entry = self.data.get(key)
        return entry[1] if entry else None

    async def setex(self, key, ttl, value):
        if self.fail:
            raise RedisConnectionError("refused")
        self.data[key] = (ttl, value)

    async def aclose(self):
        self.closed = True


class TestRedisKeyValueStore:
    def test_round_trip_through_client(self):
        client = _FakeRedis()
        store = RedisKeyValueStore(client)

        asyncio.run(store.setex("k", 30, "payload"))

        assert client.data["k"] == (30, "payload")
        assert asyncio.run(store.get("k")) == "payload"

    def test_redis_error_becomes_store_failure(self):
        store = RedisKeyValueStore(_FakeRedis(fail=True))
        with pytest.raises(StoreFailureError) as exc_info:
            asyncio.run(store.get("k"))
        assert exc_info.value.store == "cache"
        with pytest.raises(StoreFailureError):
            asyncio.run(store.setex("k", 30, "v"))

    def test_aclose_closes_client(self):
        client = _FakeRedis()
        asyncio.run(RedisKeyValueStore(client).aclose())
        assert client.closed
