"""
Multi-signal scoring: five independent per-(user, item) signals fused into
one ranking score. Pure functions only — no DB, cache, or model I/O. The
collaborative value is fetched by the engine and passed in.

Score formula (fixed weights, sum 1.0, result in [0, 1])
---------------------------------------------------------
    total = (
        collaborative * 0.3   # learned user–item affinity
        + content     * 0.3   # match against the user's history
        + context     * 0.2   # time-of-day and device fit
        + popularity  * 0.1   # normalized views and likes
        + recency     * 0.1   # exponential decay on item age
    )

Component explanations
----------------------
collaborative (0–1):
    External model output, clamped. Missing, NaN, or failed predictions
    fall back to the neutral prior 0.5.

content (0–1):
    0.4·min(category_views/10, 1) + 0.3·min(creator_likes/5, 1)
    + 0.2·duration_match + 0.1·tag_similarity, capped at 1.0.

    duration_match by preference:
        short  : 1.0 under 10 min, then linear falloff to 0 at 30 min
        long   : 1.0 over 30 min, else duration/30 min
        medium : 1.0 within 10–30 min, else 0.5

    tag_similarity: Jaccard(item tags, tags of recently viewed items).

context (0–1):
    0.5 base
    +0.2 when the time-of-day option is on and the item's category class
         matches the bucket (business hours → business/career,
         evening/weekend → personal/lifestyle)
    +0.1 when the device matches the length (mobile: under 15 min,
         desktop: over 15 min)

popularity (0–1):
    0.7·min(views/100k, 1) + 0.3·min(likes/10k, 1).

recency (0–1]:
    exp(−age_days / 30). An item exactly 30 days old scores 1/e.
"""

from __future__ import annotations

import math
from collections.abc import Set
from dataclasses import dataclass
from datetime import datetime

from interview_recommender.models.content import ContentItem
from interview_recommender.models.profile import (
    LONG_WATCH_SECONDS,
    SHORT_WATCH_SECONDS,
    DurationPreference,
    UserProfile,
)
from interview_recommender.models.recommendation import RequestContext, ScoreBreakdown
from interview_recommender.utils.time_utils import days_between, time_bucket

# Signal weights; must sum to 1.0.
SIGNAL_WEIGHTS: dict[str, float] = {
    "collaborative": 0.3,
    "content":       0.3,
    "context":       0.2,
    "popularity":    0.1,
    "recency":       0.1,
}

# Category classes rewarded by the time-of-day bucket.
_BUCKET_CATEGORIES: dict[str, frozenset[str]] = {
    "business": frozenset({"business", "career"}),
    "leisure":  frozenset({"personal", "lifestyle"}),
}

_DEVICE_SPLIT_SECONDS = 900          # 15 minutes
_RECENCY_DECAY_DAYS = 30.0
_POPULAR_VIEWS = 100_000
_POPULAR_LIKES = 10_000
_CATEGORY_SATURATION = 10
_CREATOR_SATURATION = 5


@dataclass(frozen=True)
class ScoreComponents:
    """All five signals for one candidate.

    Attributes:
        collaborative: 0–1, external model affinity (0.5 when unavailable).
        content:       0–1, history match.
        context:       0–1, request-context fit.
        popularity:    0–1, normalized engagement.
        recency:       0–1, age decay.
    """

    collaborative: float
    content:       float
    context:       float
    popularity:    float
    recency:       float

    @property
    def total(self) -> float:
        """Weighted fusion of the five signals, in [0, 1]."""
        fused = (
            self.collaborative * SIGNAL_WEIGHTS["collaborative"]
            + self.content     * SIGNAL_WEIGHTS["content"]
            + self.context     * SIGNAL_WEIGHTS["context"]
            + self.popularity  * SIGNAL_WEIGHTS["popularity"]
            + self.recency     * SIGNAL_WEIGHTS["recency"]
        )
        return _clamp(fused, 0.0, 1.0)

    def to_breakdown(self) -> ScoreBreakdown:
        return ScoreBreakdown(
            collaborative=self.collaborative,
            content=self.content,
            context=self.context,
            popularity=self.popularity,
            recency=self.recency,
            total=self.total,
        )


def compute_score(
    collaborative: float,
    item:          ContentItem,
    profile:       UserProfile,
    context:       RequestContext,
    now:           datetime,
) -> ScoreComponents:
    """Compute all five signals for one candidate.

    Args:
        collaborative: Collaborative affinity, already defaulted to the
                       neutral prior when the model had no answer.
        item:          The candidate.
        profile:       The requesting user's profile (may be empty).
        context:       Request context options.
        now:           Evaluation time for recency and time-of-day.

    Returns:
        ScoreComponents with every field clamped to [0, 1].
    """
    return ScoreComponents(
        collaborative=_clamp(collaborative, 0.0, 1.0),
        content=compute_content_score(item, profile),
        context=compute_context_score(item, context, now),
        popularity=compute_popularity_score(item.view_count, item.like_count),
        recency=compute_recency_score(item.created_at, now),
    )


def compute_content_score(item: ContentItem, profile: UserProfile) -> float:
    """History-match score for ``item`` against ``profile``."""
    category_part = min(profile.category_affinity(item.category) / _CATEGORY_SATURATION, 1.0)
    creator_part  = min(profile.creator_affinity(item.creator_id) / _CREATOR_SATURATION, 1.0)
    duration_part = duration_match(item.duration, profile.duration_preference)
    tag_part      = jaccard_similarity(item.tag_set, frozenset(profile.history_tags))

    score = (
        0.4 * category_part
        + 0.3 * creator_part
        + 0.2 * duration_part
        + 0.1 * tag_part
    )
    return _clamp(score, 0.0, 1.0)


def duration_match(item_duration: int, preference: DurationPreference) -> float:
    """How well an item's length fits the preferred band, in [0, 1]."""
    if preference == "short":
        if item_duration < SHORT_WATCH_SECONDS:
            return 1.0
        return max(0.0, 1.0 - (item_duration - SHORT_WATCH_SECONDS) / (LONG_WATCH_SECONDS - SHORT_WATCH_SECONDS))
    if preference == "long":
        if item_duration > LONG_WATCH_SECONDS:
            return 1.0
        return max(0.0, item_duration / LONG_WATCH_SECONDS)
    if SHORT_WATCH_SECONDS <= item_duration <= LONG_WATCH_SECONDS:
        return 1.0
    return 0.5


def jaccard_similarity(a: Set[str], b: Set[str]) -> float:
    """|a ∩ b| / |a ∪ b|; 0 when either set is empty."""
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def compute_context_score(item: ContentItem, context: RequestContext, now: datetime) -> float:
    """Context fit of ``item`` for this request."""
    score = 0.5

    if context.time_of_day:
        if item.category in _BUCKET_CATEGORIES[time_bucket(now)]:
            score += 0.2

    if context.device == "mobile" and item.duration < _DEVICE_SPLIT_SECONDS:
        score += 0.1
    elif context.device == "desktop" and item.duration > _DEVICE_SPLIT_SECONDS:
        score += 0.1

    return _clamp(score, 0.0, 1.0)


def compute_popularity_score(view_count: int, like_count: int) -> float:
    """Engagement score from lifetime view and like counts."""
    view_part = min(max(view_count, 0) / _POPULAR_VIEWS, 1.0)
    like_part = min(max(like_count, 0) / _POPULAR_LIKES, 1.0)
    return view_part * 0.7 + like_part * 0.3


def compute_recency_score(created_at: datetime, now: datetime) -> float:
    """exp(−age_days / 30); 1.0 for items created at or after ``now``."""
    return math.exp(-days_between(created_at, now) / _RECENCY_DECAY_DAYS)


# ── Helper ────────────────────────────────────────────────────────────────────

def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))
