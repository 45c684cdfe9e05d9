"""
Collaborative affinity scorers: ``predict(user_id, item_id) -> [0, 1] | None``.

The engine treats the collaborative signal as a black box. Two
implementations ship here:

  NeutralAffinityScorer   no model available; always returns ``None`` so
                          every item gets the neutral prior.
  LightGBMAffinityModel   a pre-trained LightGBM booster loaded from a
                          joblib artifact written by the offline trainer.

Artifact layout
---------------
The joblib file holds a dict::

    {
        "booster":       lgb.Booster,
        "feature_cols":  ["user_id", "item_id", ...],   # booster input order
        "model_version": "v1",
        "trained_at":    "2026-01-31",
    }

Features are assembled by NAME from ``feature_cols``; a column the scorer
cannot supply is passed as NaN (LightGBM handles missing values natively).
Training is out of scope for this package.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any, Optional, Protocol

from interview_recommender.errors import SignalUnavailableError

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 0.5


class AffinityScorer(Protocol):
    """Black-box collaborative scorer.

    ``predict`` returns ``None`` when it has no opinion for the pair.
    It may also raise; callers apply the neutral default either way.
    """

    def predict(self, user_id: int, item_id: int) -> Optional[float]: ...


class NeutralAffinityScorer:
    """Scorer used when no model artifact is configured."""

    def predict(self, user_id: int, item_id: int) -> Optional[float]:
        return None


class LightGBMAffinityModel:
    """Pre-trained LightGBM user–item affinity model.

    Attributes:
        model_version: Version string from the artifact.
        trained_at: ISO date the booster was trained, or ``""``.
    """

    def __init__(
        self,
        booster: Any,
        feature_cols: list[str],
        model_version: str = "",
        trained_at: str = "",
    ) -> None:
        if not feature_cols:
            raise ValueError("LightGBMAffinityModel needs at least one feature column.")
        self._booster = booster
        self._feature_cols = list(feature_cols)
        self.model_version = model_version
        self.trained_at = trained_at

    @property
    def feature_cols(self) -> list[str]:
        return list(self._feature_cols)

    def predict(self, user_id: int, item_id: int) -> Optional[float]:
        """Predict affinity for one (user, item) pair.

        Returns:
            The raw booster output (callers clamp), or ``None`` if the
            booster produced NaN.
        """
        import numpy as np

        features = {"user_id": float(user_id), "item_id": float(item_id)}
        row = [features.get(col, math.nan) for col in self._feature_cols]
        X = np.array([row], dtype=np.float64)
        pred = float(self._booster.predict(X)[0])
        return None if math.isnan(pred) else pred

    @classmethod
    def load(cls, artifact_path: Path) -> "LightGBMAffinityModel":
        """Load a serialized affinity model from disk.

        Raises:
            FileNotFoundError: If ``artifact_path`` does not exist.
            ValueError: If the artifact lacks a booster or feature list.
        """
        import joblib

        if not artifact_path.exists():
            raise FileNotFoundError(f"Affinity model artifact not found: {artifact_path}")

        state = joblib.load(artifact_path)
        booster = state.get("booster")
        feature_cols = state.get("feature_cols") or []
        if booster is None or not feature_cols:
            raise ValueError(
                f"Affinity model artifact {artifact_path} must contain "
                "'booster' and 'feature_cols'."
            )
        inst = cls(
            booster=booster,
            feature_cols=feature_cols,
            model_version=state.get("model_version", ""),
            trained_at=state.get("trained_at", ""),
        )
        logger.info(
            "Affinity model loaded: %s (version=%s, trained=%s)",
            artifact_path, inst.model_version or "?", inst.trained_at or "?",
        )
        return inst


def collaborative_score(
    scorer: AffinityScorer,
    user_id: int,
    item_id: int,
    neutral: float = NEUTRAL_SCORE,
) -> float:
    """Collaborative signal for one pair, never raising.

    ``None``, NaN, non-numeric output, and any exception from
    ``scorer.predict`` fall back to ``neutral``; other outputs are clamped
    to [0, 1].
    """
    try:
        raw = scorer.predict(user_id, item_id)
        value = None if raw is None else float(raw)
    except Exception as exc:
        err = SignalUnavailableError("collaborative", str(exc))
        logger.warning(
            "%s (user=%s item=%s); using neutral %.2f",
            err, user_id, item_id, neutral,
            extra={"signal": err.signal, "user_id": user_id, "item_id": item_id},
        )
        return neutral
    if value is None or math.isnan(value):
        return neutral
    return max(0.0, min(1.0, value))


def load_affinity_scorer(artifact_path: Optional[str]) -> AffinityScorer:
    """Return the configured scorer, or the neutral one if none is configured."""
    if not artifact_path:
        logger.info("No affinity model configured; collaborative signal will be neutral.")
        return NeutralAffinityScorer()
    return LightGBMAffinityModel.load(Path(artifact_path))
