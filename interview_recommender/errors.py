"""
Error taxonomy for the recommendation engine.

Only ``StoreFailureError`` from the relational store (while reading the
interaction history or the candidate pool) is meant to reach callers of
``get_personalized_recommendations()``. The others are raised by lower
layers and converted into degraded results by the engine:

  UserNotFoundError       → empty profile (popularity/recency/context only)
  SignalUnavailableError  → that sub-score falls back to its neutral default
  StoreFailureError       → cache: treated as a miss; audit log: logged only
"""

from __future__ import annotations


class RecommenderError(Exception):
    """Base class for all recommender errors."""


class UserNotFoundError(RecommenderError):
    """The requested user id does not resolve to a user row."""

    def __init__(self, user_id: int) -> None:
        super().__init__(f"User {user_id} not found.")
        self.user_id = user_id


class SignalUnavailableError(RecommenderError):
    """A sub-score's data source could not produce a value."""

    def __init__(self, signal: str, reason: str = "") -> None:
        message = f"Signal '{signal}' unavailable"
        super().__init__(f"{message}: {reason}" if reason else f"{message}.")
        self.signal = signal


class StoreFailureError(RecommenderError):
    """The cache or the relational store could not be reached.

    Attributes:
        store: ``"database"`` or ``"cache"``.
    """

    def __init__(self, store: str, reason: str = "") -> None:
        message = f"{store} store failure"
        super().__init__(f"{message}: {reason}" if reason else message)
        self.store = store
