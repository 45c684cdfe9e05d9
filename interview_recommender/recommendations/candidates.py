"""
Candidate retrieval: the published, public items a user has not yet viewed
or disliked, newest first, capped at ``ranking.candidate_cap``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from interview_recommender.models.content import ContentItem

if TYPE_CHECKING:
    from interview_recommender.recommendations.engine import ServiceContext

logger = logging.getLogger(__name__)


async def retrieve_candidates(ctx: "ServiceContext", user_id: int) -> list[ContentItem]:
    """Fetch the candidate pool for ``user_id``.

    An empty list means nothing qualifies; it is not an error.

    Raises:
        StoreFailureError: The relational store could not be read.
    """
    cap = ctx.settings.ranking.candidate_cap
    items = await ctx.store.get_candidate_items(user_id, cap)

    eligible = [item for item in items if item.is_eligible]
    if len(eligible) != len(items):
        logger.debug(
            "Dropped %d ineligible candidates for user %s",
            len(items) - len(eligible), user_id,
        )
    return eligible[:cap]
