"""
User preference profile built from bounded interaction windows.

A profile summarizes the user's most recent views and likes:

  categories          category slug → number of recent views in it
  creators            creator id    → number of recent likes of their content
  duration_preference "short" (<10 min mean watch) / "medium" / "long" (>30 min)
  profile_strength    0.7·min(views/50, 1) + 0.3·min(likes/20, 1)
  history_tags        union of tags on the most recent viewed items

Profiles are cached as JSON, so every field must survive a
``model_dump(mode="json")`` → ``model_validate()`` round trip.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from interview_recommender.models.content import Interaction, UserRecord
from interview_recommender.utils.time_utils import parse_db_timestamp, utcnow

DurationPreference = Literal["short", "medium", "long"]

SHORT_WATCH_SECONDS = 600     # mean watch below this → "short"
LONG_WATCH_SECONDS = 1800     # mean watch above this → "long"


class UserProfile(BaseModel):
    """Per-user preference summary.

    Attributes:
        user_id: Profile owner.
        user: Basic user attributes; ``None`` when the user could not be
            resolved (empty/default profile).
        categories: Category affinity counts from the view window.
        creators: Creator affinity counts from the like window.
        duration_preference: Preferred video length band.
        profile_strength: How much history backs the profile, in [0, 1].
        view_history: Most-recent-first views (bounded by the view window).
        like_history: Most-recent-first likes (bounded by the like window).
        history_tags: Sorted union of tags of recently viewed items.
        built_at: UTC time the profile was computed.
    """

    model_config = ConfigDict(frozen=True)

    user_id: int
    user: Optional[UserRecord] = None
    categories: dict[str, int] = Field(default_factory=dict)
    creators: dict[int, int] = Field(default_factory=dict)
    duration_preference: DurationPreference = "medium"
    profile_strength: float = 0.0
    view_history: tuple[Interaction, ...] = ()
    like_history: tuple[Interaction, ...] = ()
    history_tags: tuple[str, ...] = ()
    built_at: datetime = Field(default_factory=utcnow)

    @field_validator("profile_strength")
    @classmethod
    def validate_strength(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"profile_strength must be in [0.0, 1.0], got {v}.")
        return v

    @field_validator("built_at", mode="before")
    @classmethod
    def normalize_built_at(cls, v):
        return parse_db_timestamp(v)

    @classmethod
    def empty(cls, user_id: int) -> "UserProfile":
        """Default profile for unknown users or users with no history."""
        return cls(user_id=user_id)

    @property
    def is_empty(self) -> bool:
        return not self.view_history and not self.like_history

    def category_affinity(self, category: str) -> int:
        return self.categories.get(category, 0)

    def creator_affinity(self, creator_id: int) -> int:
        return self.creators.get(creator_id, 0)
