"""
Builds a ``ServiceContext`` from ``AppConfig``.

    ctx = build_service_context(config)
    recs = await get_personalized_recommendations(ctx, user_id=42)
    await close_service_context(ctx)

The cache backend is picked by ``cache.backend``: ``"memory"`` keeps entries
in-process (lost on exit), ``"redis"`` shares them across processes.
"""

from __future__ import annotations

import logging

from interview_recommender.cache.kv_store import (
    InMemoryKeyValueStore,
    KeyValueStore,
    make_redis_store,
)
from interview_recommender.cache.ranking_cache import RankingCache
from interview_recommender.config import AppConfig
from interview_recommender.db.store import SqliteRecommendationStore
from interview_recommender.ml.affinity_model import load_affinity_scorer
from interview_recommender.recommendations.engine import ServiceContext

logger = logging.getLogger(__name__)


def build_key_value_store(config: AppConfig) -> KeyValueStore:
    if config.cache.backend == "redis":
        logger.info("Using Redis cache backend")
        return make_redis_store(config.cache.redis_url)
    return InMemoryKeyValueStore()


def build_service_context(config: AppConfig) -> ServiceContext:
    """Wire store, cache and collaborative scorer from configuration.

    Raises:
        FileNotFoundError: ``affinity_model.artifact_path`` is set but missing.
    """
    store = SqliteRecommendationStore(
        config.database.db_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    )
    cache = RankingCache(
        build_key_value_store(config),
        namespace=config.cache.namespace,
        profile_ttl_seconds=config.cache.profile_ttl_seconds,
        recommendations_ttl_seconds=config.cache.recommendations_ttl_seconds,
    )
    scorer = load_affinity_scorer(config.affinity_model.artifact_path)
    return ServiceContext(store=store, cache=cache, scorer=scorer, settings=config)


async def close_service_context(ctx: ServiceContext) -> None:
    """Finish pending background writes and release the cache connection."""
    await ctx.background.drain()
    aclose = getattr(ctx.cache.store, "aclose", None)
    if aclose is not None:
        await aclose()
