"""
Ranking cache: memoizes user profiles and final ranked lists.

Keys
----
    {namespace}profile:{user_id}         UserProfile JSON        (profile TTL)
    {namespace}recs:{user_id}:{limit}    list of recommendations (list TTL)

The two namespaces expire independently. Entries are written once per
computation and never updated in place; a later write for the same key
simply replaces it with an equivalent value.

Failure policy
--------------
The cache is an optimization. A ``StoreFailureError`` from the backing
store, or an entry that no longer decodes into the current models, is
logged and treated as a miss; a failed write is logged and dropped.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Optional

from pydantic import TypeAdapter, ValidationError

from interview_recommender.cache.kv_store import KeyValueStore
from interview_recommender.errors import StoreFailureError
from interview_recommender.models.profile import UserProfile
from interview_recommender.models.recommendation import ExplainedRecommendation

logger = logging.getLogger(__name__)

_RECOMMENDATIONS_ADAPTER = TypeAdapter(list[ExplainedRecommendation])

Recommendations = list[ExplainedRecommendation]


@dataclass(frozen=True)
class CacheResult:
    """Outcome of ``RankingCache.get_or_compute()``.

    Attributes:
        value: The cached or freshly computed recommendation list.
        hit: ``True`` if ``value`` came from the cache.
    """

    value: Recommendations
    hit: bool


class RankingCache:
    """Profile and recommendation-list cache over a ``KeyValueStore``.

    Args:
        store: Backing GET/SETEX store.
        namespace: Key prefix shared by both entry kinds.
        profile_ttl_seconds: Lifetime of profile entries.
        recommendations_ttl_seconds: Lifetime of ranked-list entries.
    """

    def __init__(
        self,
        store: KeyValueStore,
        namespace: str = "interview_recs:",
        profile_ttl_seconds: int = 1800,
        recommendations_ttl_seconds: int = 3600,
    ) -> None:
        self.store = store
        self.namespace = namespace
        self.profile_ttl_seconds = profile_ttl_seconds
        self.recommendations_ttl_seconds = recommendations_ttl_seconds

    # ── Keys ──────────────────────────────────────────────────────────────────

    def profile_key(self, user_id: int) -> str:
        return f"{self.namespace}profile:{user_id}"

    def recommendations_key(self, user_id: int, limit: int) -> str:
        return f"{self.namespace}recs:{user_id}:{limit}"

    # ── Profiles ──────────────────────────────────────────────────────────────

    async def get_profile(self, user_id: int) -> Optional[UserProfile]:
        raw = await self._get(self.profile_key(user_id))
        if raw is None:
            return None
        try:
            return UserProfile.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning(
                "Discarding undecodable profile cache entry for user %s: %s",
                user_id, exc.error_count(),
                extra={"user_id": user_id, "store": "cache"},
            )
            return None

    async def put_profile(self, profile: UserProfile) -> None:
        await self._set(
            self.profile_key(profile.user_id),
            self.profile_ttl_seconds,
            profile.model_dump_json(),
        )

    # ── Ranked lists ──────────────────────────────────────────────────────────

    async def get_recommendations(self, user_id: int, limit: int) -> Optional[Recommendations]:
        raw = await self._get(self.recommendations_key(user_id, limit))
        if raw is None:
            return None
        try:
            return _RECOMMENDATIONS_ADAPTER.validate_json(raw)
        except ValidationError as exc:
            logger.warning(
                "Discarding undecodable recommendation cache entry for user %s: %s",
                user_id, exc.error_count(),
                extra={"user_id": user_id, "store": "cache"},
            )
            return None

    async def put_recommendations(
        self, user_id: int, limit: int, recommendations: Recommendations
    ) -> None:
        payload = json.dumps(
            [r.model_dump(mode="json") for r in recommendations],
            separators=(",", ":"),
        )
        await self._set(
            self.recommendations_key(user_id, limit),
            self.recommendations_ttl_seconds,
            payload,
        )

    async def get_or_compute(
        self,
        user_id: int,
        limit: int,
        compute: Callable[[], Awaitable[Recommendations]],
        on_computed: Optional[Callable[[Recommendations], None]] = None,
    ) -> CacheResult:
        """Return the cached list for ``(user_id, limit)`` or compute it.

        On a hit the cached list is returned verbatim and ``compute`` is not
        called. On a miss ``compute`` runs, its result is stored, and then
        ``on_computed`` (if given) is invoked with the result. ``on_computed``
        must not block; the engine uses it to schedule the audit-log write.

        Errors raised by ``compute`` propagate and nothing is stored.
        """
        cached = await self.get_recommendations(user_id, limit)
        if cached is not None:
            logger.debug("Recommendation cache hit: user=%s limit=%d", user_id, limit)
            return CacheResult(value=cached, hit=True)

        value = await compute()
        await self.put_recommendations(user_id, limit, value)
        if on_computed is not None:
            on_computed(value)
        return CacheResult(value=value, hit=False)

    # ── Store access ──────────────────────────────────────────────────────────

    async def _get(self, key: str) -> Optional[str]:
        try:
            return await self.store.get(key)
        except StoreFailureError as exc:
            logger.warning("Cache read failed, treating as miss: %s", exc, extra={"store": "cache"})
            return None

    async def _set(self, key: str, ttl_seconds: int, value: str) -> None:
        try:
            await self.store.setex(key, ttl_seconds, value)
        except StoreFailureError as exc:
            logger.warning("Cache write failed, entry dropped: %s", exc, extra={"store": "cache"})
