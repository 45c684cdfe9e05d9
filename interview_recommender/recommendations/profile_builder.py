"""
Profile builder: summarizes a user's recent history into a ``UserProfile``.

Steps
-----
1. Return the cached profile if one is still live.
2. Resolve the user row. An unknown user yields ``UserProfile.empty()``
   (logged, not cached); scoring then relies on popularity, recency and
   context alone.
3. Fetch the most recent views and likes (bounded windows) concurrently.
   A ``StoreFailureError`` here propagates: without history there is no
   meaningful profile to build.
4. Resolve item metadata for every interacted item and tags for the most
   recent viewed items, each in one batched lookup. Failures here degrade
   (missing categories/creators, empty tag history).
5. Derive category/creator affinities, duration preference and strength,
   then write the profile to the cache. A profile built after a step-4
   failure is returned but not cached.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from collections.abc import Sequence
from typing import TYPE_CHECKING, Optional

from interview_recommender.errors import (
    SignalUnavailableError,
    StoreFailureError,
    UserNotFoundError,
)
from interview_recommender.models.content import ContentItem, Interaction, UserRecord
from interview_recommender.models.profile import (
    LONG_WATCH_SECONDS,
    SHORT_WATCH_SECONDS,
    DurationPreference,
    UserProfile,
)

if TYPE_CHECKING:
    from interview_recommender.recommendations.engine import ServiceContext

logger = logging.getLogger(__name__)

_STRENGTH_VIEW_SATURATION = 50
_STRENGTH_LIKE_SATURATION = 20


async def build_profile(ctx: "ServiceContext", user_id: int) -> UserProfile:
    """Return the user's profile, from cache when possible.

    Raises:
        StoreFailureError: The relational store failed while reading the
            user row or interaction history.
    """
    cached = await ctx.cache.get_profile(user_id)
    if cached is not None:
        logger.debug("Profile cache hit: user=%s", user_id)
        return cached

    try:
        user = await _load_user(ctx, user_id)
    except UserNotFoundError as exc:
        logger.warning("%s Using empty profile.", exc, extra={"user_id": user_id})
        return UserProfile.empty(user_id)

    profile, degraded = await compute_profile(ctx, user)
    if degraded:
        logger.info("Profile for user %s built from partial data; not cached", user_id, extra={"user_id": user_id})
    else:
        await ctx.cache.put_profile(profile)
    return profile


async def compute_profile(ctx: "ServiceContext", user: UserRecord) -> tuple[UserProfile, bool]:
    """Build a fresh profile for an existing user (no cache access).

    Returns:
        ``(profile, degraded)``. ``degraded`` is True when the item metadata
        or tag lookup failed and the profile lacks those signals.
    """
    ranking = ctx.settings.ranking
    views, likes = await asyncio.gather(
        ctx.store.get_recent_interactions(user.user_id, "view", ranking.view_window),
        ctx.store.get_recent_interactions(user.user_id, "like", ranking.like_window),
    )
    views = views[: ranking.view_window]
    likes = likes[: ranking.like_window]

    tag_item_ids = _unique_ids(views)[: ranking.tag_history_window]
    loaded_items, loaded_tags = await asyncio.gather(
        _load_items(ctx, user.user_id, _unique_ids(views + likes)),
        _load_history_tags(ctx, user.user_id, tag_item_ids),
    )
    degraded = loaded_items is None or loaded_tags is None
    items = loaded_items or {}
    history_tags = loaded_tags or ()

    categories: Counter[str] = Counter()
    for view in views:
        item = items.get(view.item_id)
        if item is not None:
            categories[item.category] += 1

    creators: Counter[int] = Counter()
    for like in likes:
        item = items.get(like.item_id)
        if item is not None:
            creators[item.creator_id] += 1

    profile = UserProfile(
        user_id=user.user_id,
        user=user,
        categories=dict(categories),
        creators=dict(creators),
        duration_preference=duration_preference(views),
        profile_strength=profile_strength(len(views), len(likes)),
        view_history=tuple(views),
        like_history=tuple(likes),
        history_tags=history_tags,
        built_at=ctx.clock(),
    )
    logger.debug(
        "Built profile: user=%s views=%d likes=%d categories=%d strength=%.2f",
        user.user_id, len(views), len(likes), len(categories), profile.profile_strength,
    )
    return profile, degraded


def duration_preference(views: Sequence[Interaction]) -> DurationPreference:
    """Preferred length band from mean watched duration; ``medium`` if no views."""
    if not views:
        return "medium"
    mean_watched = sum(v.duration_watched for v in views) / len(views)
    if mean_watched < SHORT_WATCH_SECONDS:
        return "short"
    if mean_watched > LONG_WATCH_SECONDS:
        return "long"
    return "medium"


def profile_strength(view_count: int, like_count: int) -> float:
    """0.7·min(views/50, 1) + 0.3·min(likes/20, 1)."""
    return (
        0.7 * min(view_count / _STRENGTH_VIEW_SATURATION, 1.0)
        + 0.3 * min(like_count / _STRENGTH_LIKE_SATURATION, 1.0)
    )


# ── Lookups ───────────────────────────────────────────────────────────────────

async def _load_user(ctx: "ServiceContext", user_id: int) -> UserRecord:
    user = await ctx.store.get_user(user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return user


async def _load_items(
    ctx: "ServiceContext", user_id: int, item_ids: list[int]
) -> Optional[dict[int, ContentItem]]:
    """Items by id, or ``None`` when the lookup failed."""
    if not item_ids:
        return {}
    try:
        items = await ctx.store.get_items(item_ids)
    except StoreFailureError as exc:
        err = SignalUnavailableError("content", f"item metadata lookup failed: {exc}")
        logger.warning("%s (user=%s)", err, user_id, extra={"signal": err.signal, "user_id": user_id})
        return None
    missing = len(item_ids) - len(items)
    if missing:
        logger.debug("Profile for user %s: %d interacted items have no metadata", user_id, missing)
    return items


async def _load_history_tags(
    ctx: "ServiceContext", user_id: int, item_ids: list[int]
) -> Optional[tuple[str, ...]]:
    """Sorted tag union, or ``None`` when the lookup failed."""
    if not item_ids:
        return ()
    try:
        tags_by_item = await ctx.store.get_item_tags(item_ids)
    except StoreFailureError as exc:
        err = SignalUnavailableError("content", f"tag lookup failed: {exc}")
        logger.warning("%s (user=%s)", err, user_id, extra={"signal": err.signal, "user_id": user_id})
        return None
    union: set[str] = set()
    for tags in tags_by_item.values():
        union.update(tags)
    return tuple(sorted(union))


def _unique_ids(interactions: Sequence[Interaction]) -> list[int]:
    """Item ids in first-seen order, without duplicates."""
    return list(dict.fromkeys(i.item_id for i in interactions))
