"""
Recommendation engine: the single public entry point and its wiring.

Flow for ``get_personalized_recommendations(ctx, user_id, limit, context)``
--------------------------------------------------------------------------
1. Clamp ``limit`` to [1, max_limit] and parse ``context``.
2. Ranking cache lookup on (user_id, limit); a hit is returned verbatim.
3. On a miss:
     a. build the profile and retrieve candidates concurrently;
     b. no candidates -> ``[]`` (cached, no audit log);
     c. score every candidate, at most ``scoring_concurrency`` at a time
        (the collaborative prediction runs in a worker thread; fusion is
        pure and never suspends);
     d. rank, truncate and explain;
     e. store the list, then schedule the audit-log write as a detached task.

Only a ``StoreFailureError`` from the relational store while reading
history or candidates reaches the caller; every other failure degrades.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Coroutine, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Union

from interview_recommender.cache.ranking_cache import RankingCache
from interview_recommender.config import AppConfig
from interview_recommender.db.store import RecommendationStore
from interview_recommender.errors import StoreFailureError
from interview_recommender.ml.affinity_model import AffinityScorer, collaborative_score
from interview_recommender.models.content import ContentItem
from interview_recommender.models.profile import UserProfile
from interview_recommender.models.recommendation import (
    ExplainedRecommendation,
    RecommendationLog,
    RequestContext,
)
from interview_recommender.recommendations.candidates import retrieve_candidates
from interview_recommender.recommendations.profile_builder import build_profile
from interview_recommender.recommendations.ranker import ScoredItem, rank
from interview_recommender.recommendations.scorer import compute_score
from interview_recommender.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


class BackgroundTasks:
    """Holds strong references to detached tasks until they finish.

    Exceptions escaping a task are logged, never re-raised.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any], name: Optional[str] = None) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Background task %s failed: %s", task.get_name(), exc,
                exc_info=exc,
            )

    async def drain(self) -> None:
        """Wait for every pending task (including ones spawned meanwhile)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def __len__(self) -> int:
        return len(self._tasks)


@dataclass
class ServiceContext:
    """Everything one recommendation call needs, passed in explicitly.

    Attributes:
        store:      Relational store (history, candidates, audit log).
        cache:      Profile and ranked-list cache.
        scorer:     Collaborative affinity model.
        settings:   Application configuration.
        clock:      Returns the current UTC time; injectable for tests.
        background: Detached side-effect tasks (audit log).
    """

    store:      RecommendationStore
    cache:      RankingCache
    scorer:     AffinityScorer
    settings:   AppConfig
    clock:      Callable[[], datetime] = utcnow
    background: BackgroundTasks = field(default_factory=BackgroundTasks)


ContextOptions = Union[RequestContext, Mapping[str, Any], None]


async def get_personalized_recommendations(
    ctx:     ServiceContext,
    user_id: int,
    limit:   Optional[int] = None,
    context: ContextOptions = None,
) -> list[ExplainedRecommendation]:
    """Ranked, explained recommendations for ``user_id``.

    Args:
        ctx:     Service context.
        user_id: Requesting user.
        limit:   Maximum results; defaults to ``ranking.default_limit`` and
                 is clamped to [1, ``ranking.max_limit``].
        context: ``{"timeOfDay": bool, "device": "mobile"|"desktop"}``;
                 unknown keys are ignored.

    Returns:
        Best-first list of at most ``limit`` recommendations, possibly empty.

    Raises:
        StoreFailureError: The relational store failed while reading the
            user's history or the candidate pool.
    """
    limit = resolve_limit(ctx, limit)
    request_ctx = parse_context(context)
    started = time.perf_counter()

    result = await ctx.cache.get_or_compute(
        user_id,
        limit,
        lambda: _compute(ctx, user_id, limit, request_ctx),
        on_computed=lambda recs: _schedule_audit_log(ctx, user_id, recs),
    )

    elapsed_ms = (time.perf_counter() - started) * 1000.0
    logger.info(
        "Recommendations served: user=%s limit=%d returned=%d cache=%s elapsed=%.1fms",
        user_id, limit, len(result.value), "hit" if result.hit else "miss", elapsed_ms,
        extra={
            "user_id": user_id,
            "limit": limit,
            "returned": len(result.value),
            "cache_hit": result.hit,
            "elapsed_ms": round(elapsed_ms, 1),
        },
    )
    return list(result.value)


def resolve_limit(ctx: ServiceContext, limit: Optional[int]) -> int:
    ranking = ctx.settings.ranking
    if limit is None:
        return ranking.default_limit
    return max(1, min(int(limit), ranking.max_limit))


def parse_context(context: ContextOptions) -> RequestContext:
    if context is None:
        return RequestContext()
    if isinstance(context, RequestContext):
        return context
    return RequestContext.model_validate(dict(context))


# ── Computation ───────────────────────────────────────────────────────────────

async def _compute(
    ctx:         ServiceContext,
    user_id:     int,
    limit:       int,
    request_ctx: RequestContext,
) -> list[ExplainedRecommendation]:
    now = ctx.clock()
    profile, candidates = await asyncio.gather(
        build_profile(ctx, user_id),
        retrieve_candidates(ctx, user_id),
    )
    if not candidates:
        logger.info("No eligible candidates for user %s", user_id, extra={"user_id": user_id})
        return []

    semaphore = asyncio.Semaphore(ctx.settings.ranking.scoring_concurrency)
    scored = await asyncio.gather(
        *(
            _score_candidate(ctx, semaphore, profile, item, request_ctx, now)
            for item in candidates
        )
    )
    logger.debug(
        "Scored %d candidates for user %s (profile strength %.2f)",
        len(scored), user_id, profile.profile_strength,
    )
    return rank(list(scored), limit, profile)


async def _score_candidate(
    ctx:         ServiceContext,
    semaphore:   asyncio.Semaphore,
    profile:     UserProfile,
    item:        ContentItem,
    request_ctx: RequestContext,
    now:         datetime,
) -> ScoredItem:
    async with semaphore:
        collaborative = await asyncio.to_thread(
            collaborative_score,
            ctx.scorer,
            profile.user_id,
            item.item_id,
            ctx.settings.affinity_model.neutral_score,
        )
    components = compute_score(collaborative, item, profile, request_ctx, now)
    return ScoredItem(item=item, components=components)


# ── Audit log ─────────────────────────────────────────────────────────────────

def _schedule_audit_log(
    ctx: ServiceContext, user_id: int, recommendations: list[ExplainedRecommendation]
) -> None:
    if not recommendations:
        return
    log = RecommendationLog(
        user_id=user_id,
        recommended_items=tuple(r.item_id for r in recommendations),
        algorithm_version=ctx.settings.ranking.algorithm_version,
        created_at=ctx.clock(),
    )
    ctx.background.spawn(_write_audit_log(ctx, log), name=f"audit-log-{log.log_id}")


async def _write_audit_log(ctx: ServiceContext, log: RecommendationLog) -> None:
    try:
        await ctx.store.insert_recommendation_log(log)
    except StoreFailureError as exc:
        logger.warning(
            "Audit log write failed for user %s: %s", log.user_id, exc,
            extra={"user_id": log.user_id, "log_id": log.log_id, "store": exc.store},
        )
