"""
Recommendation ranker: orders scored candidates, truncates to the requested
limit, and attaches a human-readable explanation to each survivor.

Usage flow
----------
1. ScoredItem(item, components)        one per scored candidate
2. rank(scored, limit, profile)        -> list[ExplainedRecommendation]

Ordering
--------
Final score descending. Equal scores order by newer ``created_at``, then
ascending item id, so the output is fully determined by the inputs.

Explanations
------------
The first matching rule wins:
    1. the user has viewed the item's category   -> category interest
    2. the user has liked the item's creator      -> creator loyalty
    3. popularity sub-score > 0.7                 -> trending
    4. recency sub-score > 0.8                    -> new content
    5. otherwise                                  -> generic fallback
"""

from __future__ import annotations

from dataclasses import dataclass

from interview_recommender.models.content import ContentItem
from interview_recommender.models.profile import UserProfile
from interview_recommender.models.recommendation import ExplainedRecommendation
from interview_recommender.recommendations.scorer import ScoreComponents

TRENDING_THRESHOLD = 0.7
NEW_CONTENT_THRESHOLD = 0.8
FALLBACK_EXPLANATION = "Recommended for you"


@dataclass(frozen=True)
class ScoredItem:
    """A candidate together with its five signals.

    Attributes:
        item:       The candidate item.
        components: Its signal values; ``components.total`` is the rank key.
    """

    item:       ContentItem
    components: ScoreComponents

    @property
    def score(self) -> float:
        return self.components.total


def rank(
    scored:  list[ScoredItem],
    limit:   int,
    profile: UserProfile,
) -> list[ExplainedRecommendation]:
    """Sort, truncate, and explain.

    Args:
        scored:  Scored candidates in any order.
        limit:   Maximum number of results (must be >= 1).
        profile: Profile used for the explanation rules.

    Returns:
        At most ``limit`` recommendations, best first.
    """
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}.")

    ordered = sorted(scored, key=_sort_key)
    return [to_recommendation(s, profile) for s in ordered[:limit]]


def to_recommendation(scored: ScoredItem, profile: UserProfile) -> ExplainedRecommendation:
    """Build the caller-facing record for one scored candidate."""
    breakdown = scored.components.to_breakdown()
    return ExplainedRecommendation(
        **scored.item.model_dump(),
        score=breakdown.total,
        score_breakdown=breakdown,
        explanation=build_explanation(scored, profile),
        confidence=breakdown.total,
    )


def build_explanation(scored: ScoredItem, profile: UserProfile) -> str:
    """Pick the explanation for one recommendation by priority rule."""
    item = scored.item
    if profile.category_affinity(item.category) > 0:
        return f"You've shown interest in {item.category} content"
    if profile.creator_affinity(item.creator_id) > 0:
        return "You've liked content from this creator before"
    if scored.components.popularity > TRENDING_THRESHOLD:
        return "This is trending content"
    if scored.components.recency > NEW_CONTENT_THRESHOLD:
        return "This is new content"
    return FALLBACK_EXPLANATION


def _sort_key(scored: ScoredItem) -> tuple[float, float, int]:
    return (-scored.score, -scored.item.created_at.timestamp(), scored.item.item_id)
