"""
Scoring and output models for personalized recommendations.

``ScoreBreakdown``          five sub-scores plus the fused total, all in [0, 1].
``ExplainedRecommendation`` item fields + score + breakdown + explanation;
                            the shape returned to callers and cached.
``RecommendationLog``       append-only audit record of what was served.
``RequestContext``          caller-supplied context options.

All models are frozen; cached recommendation lists are immutable once written.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from interview_recommender.models.content import ContentItem
from interview_recommender.utils.time_utils import parse_db_timestamp, utcnow

VALID_DEVICES = frozenset({"mobile", "desktop"})


def _check_unit_interval(name: str, v: float) -> float:
    if not 0.0 <= v <= 1.0:
        raise ValueError(f"{name} must be in [0.0, 1.0], got {v}.")
    return v


class ScoreBreakdown(BaseModel):
    """Per-(user, item) signal values and their weighted fusion.

    Attributes:
        collaborative: Learned user–item affinity (0.5 when unavailable).
        content: Match against the user's category/creator/duration/tag history.
        context: Time-of-day and device fit.
        popularity: Normalized view and like counts.
        recency: Exponential decay on item age.
        total: Weighted fusion of the five signals.
    """

    model_config = ConfigDict(frozen=True)

    collaborative: float
    content: float
    context: float
    popularity: float
    recency: float
    total: float

    @field_validator("collaborative", "content", "context", "popularity", "recency", "total")
    @classmethod
    def validate_unit_interval(cls, v: float, info) -> float:
        return _check_unit_interval(info.field_name, v)

    def signals(self) -> dict[str, float]:
        """The five sub-scores keyed by signal name (without ``total``)."""
        return {
            "collaborative": self.collaborative,
            "content":       self.content,
            "context":       self.context,
            "popularity":    self.popularity,
            "recency":       self.recency,
        }


class ExplainedRecommendation(ContentItem):
    """A ranked, explained recommendation.

    Attributes:
        score: Final fused score in [0, 1].
        score_breakdown: The five sub-scores (``total`` equals ``score``).
        explanation: Short human-readable reason.
        confidence: Equal to ``score``.
    """

    score: float
    score_breakdown: ScoreBreakdown
    explanation: str
    confidence: float

    @field_validator("score", "confidence")
    @classmethod
    def validate_score(cls, v: float, info) -> float:
        return _check_unit_interval(info.field_name, v)

    @field_validator("explanation")
    @classmethod
    def validate_explanation(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("explanation must not be empty.")
        return v.strip()

    @model_validator(mode="after")
    def validate_confidence_matches_score(self) -> "ExplainedRecommendation":
        if self.confidence != self.score:
            raise ValueError(
                f"confidence ({self.confidence}) must equal score ({self.score})."
            )
        return self


class RecommendationLog(BaseModel):
    """Audit record of one served recommendation list.

    Attributes:
        log_id: Random UUID assigned at construction.
        user_id: Recipient.
        recommended_items: Item ids in served order.
        algorithm_version: Version string of the ranking algorithm.
        created_at: UTC time the list was computed.
    """

    model_config = ConfigDict(frozen=True)

    log_id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: int
    recommended_items: tuple[int, ...]
    algorithm_version: str
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("recommended_items")
    @classmethod
    def validate_not_empty(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        if not v:
            raise ValueError("recommended_items must not be empty.")
        return v

    @field_validator("created_at", mode="before")
    @classmethod
    def normalize_created_at(cls, v):
        return parse_db_timestamp(v)


class RequestContext(BaseModel):
    """Context options recognized by the context signal.

    Accepts both ``time_of_day`` and the ``timeOfDay`` wire name; unknown
    keys are ignored.

    Attributes:
        time_of_day: Whether to apply the time-of-day bucket boost.
        device: ``"mobile"`` or ``"desktop"``; other values match nothing.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    time_of_day: bool = Field(default=False, alias="timeOfDay")
    device: Optional[str] = None

    @field_validator("device")
    @classmethod
    def normalize_device(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().lower()
        return v if v in VALID_DEVICES else None
