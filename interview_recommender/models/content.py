"""
Content, user, and interaction records read from the relational store.

``ContentItem`` is an interview video as seen by the recommender: only the
fields the signals consume, plus ``title`` / ``status`` / ``is_public`` for
display and eligibility checks.

``Interaction`` is one row of a user's history (view, like, dislike, ...).
Views carry ``duration_watched`` in seconds; other action types leave it 0.

All models are frozen. Timestamps are normalized to timezone-aware UTC so
that recency arithmetic never mixes naive and aware datetimes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from interview_recommender.utils.time_utils import parse_db_timestamp

ActionType = Literal["view", "like", "dislike", "share", "comment"]
VALID_ACTIONS: frozenset[str] = frozenset({"view", "like", "dislike", "share", "comment"})

# Candidates are drawn only from items with this status that are also public.
PUBLISHED_STATUS = "published"
VALID_STATUSES = frozenset({"draft", "processing", "published", "archived"})

# Interaction types that remove an item from the candidate pool.
EXCLUDING_ACTIONS: tuple[str, ...] = ("view", "dislike")


class UserRecord(BaseModel):
    """Basic user attributes carried along on the profile.

    Attributes:
        user_id: Primary key of the ``users`` table.
        username: Display handle.
        interests: Free-form interest tags from onboarding.
        career_level: e.g. ``"junior"``, ``"senior"``; ``None`` if unset.
        industry: Self-reported industry; ``None`` if unset.
        subscription_tier: ``"free"`` unless the user upgraded.
    """

    model_config = ConfigDict(frozen=True)

    user_id: int
    username: str
    interests: tuple[str, ...] = ()
    career_level: Optional[str] = None
    industry: Optional[str] = None
    subscription_tier: str = "free"


class Interaction(BaseModel):
    """A single user → item interaction.

    Attributes:
        user_id: Acting user.
        item_id: Interview the action targeted.
        action_type: One of ``VALID_ACTIONS``.
        duration_watched: Seconds watched (views only; 0 otherwise).
        rating: Optional 1–5 star rating left with the action.
        created_at: UTC timestamp of the action.
    """

    model_config = ConfigDict(frozen=True)

    user_id: int
    item_id: int
    action_type: ActionType
    duration_watched: int = 0
    rating: Optional[int] = None
    created_at: datetime

    @field_validator("duration_watched")
    @classmethod
    def validate_duration(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"duration_watched must be non-negative, got {v}.")
        return v

    @field_validator("rating")
    @classmethod
    def validate_rating(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and not 1 <= v <= 5:
            raise ValueError(f"rating must be in [1, 5], got {v}.")
        return v

    @field_validator("created_at", mode="before")
    @classmethod
    def normalize_created_at(cls, v):
        return parse_db_timestamp(v)


class ContentItem(BaseModel):
    """An interview video eligible (or not) for recommendation.

    ``tags`` is kept as a sorted, de-duplicated tuple so that serialized
    output (cache entries, CLI JSON) is stable; use ``tag_set`` for set math.

    Attributes:
        item_id: Primary key of the ``interviews`` table.
        title: Display title.
        category: Content category slug, e.g. ``"tech"`` or ``"career"``.
        creator_id: User id of the interview's creator.
        duration: Length in seconds.
        view_count: Lifetime views.
        like_count: Lifetime likes.
        created_at: UTC publish timestamp.
        tags: Normalized tag strings.
        status: Publication status.
        is_public: Whether the item is publicly listed.
    """

    model_config = ConfigDict(frozen=True)

    item_id: int
    title: str = ""
    category: str
    creator_id: int
    duration: int = 0
    view_count: int = 0
    like_count: int = 0
    created_at: datetime
    tags: tuple[str, ...] = ()
    status: str = PUBLISHED_STATUS
    is_public: bool = True

    @field_validator("duration", "view_count", "like_count")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"Counts and durations must be non-negative, got {v}.")
        return v

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        if v not in VALID_STATUSES:
            raise ValueError(f"Invalid status '{v}'. Must be one of {sorted(VALID_STATUSES)}.")
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v):
        if v is None:
            return ()
        return tuple(sorted({str(t).strip().lower() for t in v if str(t).strip()}))

    @field_validator("created_at", mode="before")
    @classmethod
    def normalize_created_at(cls, v):
        return parse_db_timestamp(v)

    @property
    def tag_set(self) -> frozenset[str]:
        return frozenset(self.tags)

    @property
    def is_eligible(self) -> bool:
        """True if the item may appear in a candidate pool."""
        return self.status == PUBLISHED_STATUS and self.is_public
