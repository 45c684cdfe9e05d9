"""
Key-value stores behind the ranking cache.

Both stores expose the two operations the cache needs:

    await store.get(key)                     -> str | None
    await store.setex(key, ttl_seconds, val) -> None

``InMemoryKeyValueStore``  process-local dict; entries carry an absolute
                           ``expires_at`` and reading one past it behaves
                           exactly like a missing key.
``RedisKeyValueStore``     thin wrapper over ``redis.asyncio.Redis``; Redis
                           enforces the TTL itself.

Neither store evicts for capacity. Driver failures surface as
``StoreFailureError("cache")`` so the caller can treat them as misses.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional, Protocol

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError
from redis.retry import Retry

from interview_recommender.errors import StoreFailureError

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Minimal async GET / SETEX contract."""

    async def get(self, key: str) -> Optional[str]: ...

    async def setex(self, key: str, ttl_seconds: int, value: str) -> None: ...


@dataclass(frozen=True)
class _Entry:
    value: str
    expires_at: float


class InMemoryKeyValueStore:
    """Process-local TTL store.

    Args:
        clock: Monotonic seconds source; injectable so tests can step time.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, _Entry] = {}

    async def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            # Expired entries are indistinguishable from absent ones.
            self._entries.pop(key, None)
            return None
        return entry.value

    async def setex(self, key: str, ttl_seconds: int, value: str) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}.")
        self._entries[key] = _Entry(value=value, expires_at=self._clock() + ttl_seconds)

    def __len__(self) -> int:
        return len(self._entries)


_RETRY = Retry(ExponentialBackoff(cap=0.5, base=0.05), retries=2)


class RedisKeyValueStore:
    """``KeyValueStore`` over an async Redis client.

    The client must be created with ``decode_responses=True`` so ``get()``
    returns ``str`` (JSON) rather than ``bytes``.
    """

    def __init__(self, client: Redis) -> None:
        self._r = client

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self._r.get(key)
        except RedisError as exc:
            raise StoreFailureError("cache", str(exc)) from exc

    async def setex(self, key: str, ttl_seconds: int, value: str) -> None:
        try:
            await self._r.setex(key, ttl_seconds, value)
        except RedisError as exc:
            raise StoreFailureError("cache", str(exc)) from exc

    async def aclose(self) -> None:
        await self._r.aclose()


def make_redis_store(redis_url: str) -> RedisKeyValueStore:
    """Build a ``RedisKeyValueStore`` with short timeouts and bounded retries.

    A cache that is slow to answer is worse than a miss, so connect and
    socket timeouts are kept tight.
    """
    client: Redis = redis.from_url(
        redis_url,
        decode_responses=True,
        health_check_interval=10,
        socket_keepalive=True,
        socket_connect_timeout=2,
        socket_timeout=2,
        retry=_RETRY,
        retry_on_error=[RedisConnectionError, RedisTimeoutError],
    )
    return RedisKeyValueStore(client)
