"""
Shared pytest fixtures for the Interview Recommender test suite.

Provides:
  - ``in_memory_db``: A fresh in-memory SQLite connection with the full
    schema applied. Created anew for each test that requests it.
  - ``FakeStore``: an in-memory ``RecommendationStore`` with per-call
    failure switches, used by the pipeline tests.
  - Sample record factories and a fixed clock (Wednesday 10:00 UTC, i.e.
    business hours).
"""

from __future__ import annotations

import sqlite3
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from typing import Generator, Optional

import pytest

from interview_recommender.cache.kv_store import InMemoryKeyValueStore
from interview_recommender.cache.ranking_cache import RankingCache
from interview_recommender.config import AppConfig
from interview_recommender.db.schema import apply_schema
from interview_recommender.errors import StoreFailureError
from interview_recommender.ml.affinity_model import AffinityScorer, NeutralAffinityScorer
from interview_recommender.models.content import (
    EXCLUDING_ACTIONS,
    ContentItem,
    Interaction,
    UserRecord,
)
from interview_recommender.models.recommendation import RecommendationLog
from interview_recommender.recommendations.engine import ServiceContext

FIXED_NOW = datetime(2026, 3, 4, 10, 0, 0, tzinfo=timezone.utc)


# ── Database fixture ──────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    """Yield a fresh in-memory SQLite connection with the full schema applied.

    Foreign key enforcement is ON. Connection is closed after the test.
    """
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    apply_schema(conn)
    yield conn
    conn.close()


# ── Sample record factories ───────────────────────────────────────────────────

def make_user(user_id: int = 1, username: Optional[str] = None) -> UserRecord:
    return UserRecord(
        user_id=user_id,
        username=username or f"user{user_id}",
        interests=("python", "system-design"),
        career_level="senior",
        industry="fintech",
    )


def make_item(
    item_id: int,
    category: str = "tech",
    creator_id: int = 100,
    duration: int = 700,
    view_count: int = 0,
    like_count: int = 0,
    age_days: float = 10.0,
    tags: Sequence[str] = (),
    status: str = "published",
    is_public: bool = True,
) -> ContentItem:
    return ContentItem(
        item_id=item_id,
        title=f"Interview {item_id}",
        category=category,
        creator_id=creator_id,
        duration=duration,
        view_count=view_count,
        like_count=like_count,
        created_at=FIXED_NOW - timedelta(days=age_days),
        tags=tuple(tags),
        status=status,
        is_public=is_public,
    )


def make_interaction(
    item_id: int,
    action_type: str = "view",
    user_id: int = 1,
    duration_watched: int = 0,
    minutes_ago: int = 60,
) -> Interaction:
    return Interaction(
        user_id=user_id,
        item_id=item_id,
        action_type=action_type,
        duration_watched=duration_watched,
        created_at=FIXED_NOW - timedelta(minutes=minutes_ago),
    )


@pytest.fixture
def sample_user() -> UserRecord:
    return make_user(1)


@pytest.fixture
def sample_item() -> ContentItem:
    return make_item(10, tags=["Python", "algorithms", "python"])


# ── Fake relational store ─────────────────────────────────────────────────────

class FakeStore:
    """In-memory ``RecommendationStore``.

    Set any ``fail_*`` attribute to make that call raise
    ``StoreFailureError("database")``. ``calls`` counts invocations per
    method; ``logs`` collects audit-log writes.
    """

    def __init__(
        self,
        users: Sequence[UserRecord] = (),
        items: Sequence[ContentItem] = (),
        interactions: Sequence[Interaction] = (),
    ) -> None:
        self.users = {u.user_id: u for u in users}
        self.items = {i.item_id: i for i in items}
        self.interactions = list(interactions)
        self.logs: list[RecommendationLog] = []
        self.calls: dict[str, int] = {}
        self.fail_user = False
        self.fail_history = False
        self.fail_items = False
        self.fail_tags = False
        self.fail_candidates = False
        self.fail_log = False

    def _enter(self, name: str, fail: bool) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1
        if fail:
            raise StoreFailureError("database", f"{name} unavailable")

    async def get_user(self, user_id: int) -> Optional[UserRecord]:
        self._enter("get_user", self.fail_user)
        return self.users.get(user_id)

    async def get_recent_interactions(
        self, user_id: int, action_type: str, limit: int
    ) -> list[Interaction]:
        self._enter("get_recent_interactions", self.fail_history)
        rows = [
            i for i in self.interactions
            if i.user_id == user_id and i.action_type == action_type
        ]
        rows.sort(key=lambda i: i.created_at, reverse=True)
        return rows[:limit]

    async def get_items(self, item_ids: Sequence[int]) -> dict[int, ContentItem]:
        self._enter("get_items", self.fail_items)
        return {i: self.items[i] for i in item_ids if i in self.items}

    async def get_item_tags(self, item_ids: Sequence[int]) -> dict[int, tuple[str, ...]]:
        self._enter("get_item_tags", self.fail_tags)
        return {i: self.items[i].tags for i in item_ids if i in self.items}

    async def get_candidate_items(self, user_id: int, limit: int) -> list[ContentItem]:
        self._enter("get_candidate_items", self.fail_candidates)
        excluded = {
            i.item_id for i in self.interactions
            if i.user_id == user_id and i.action_type in EXCLUDING_ACTIONS
        }
        pool = [
            item for item in self.items.values()
            if item.is_eligible and item.item_id not in excluded
        ]
        pool.sort(key=lambda item: (-item.created_at.timestamp(), item.item_id))
        return pool[:limit]

    async def insert_recommendation_log(self, log: RecommendationLog) -> None:
        self._enter("insert_recommendation_log", self.fail_log)
        self.logs.append(log)


class FailingKeyValueStore:
    """Cache backend whose every call fails."""

    async def get(self, key: str) -> Optional[str]:
        raise StoreFailureError("cache", "connection refused")

    async def setex(self, key: str, ttl_seconds: int, value: str) -> None:
        raise StoreFailureError("cache", "connection refused")


class ManualClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_ctx(
    store: FakeStore,
    scorer: Optional[AffinityScorer] = None,
    kv_store=None,
    settings: Optional[AppConfig] = None,
) -> ServiceContext:
    """Service context over ``store`` with a fixed clock and in-memory cache."""
    cache = RankingCache(kv_store if kv_store is not None else InMemoryKeyValueStore())
    return ServiceContext(
        store=store,
        cache=cache,
        scorer=scorer or NeutralAffinityScorer(),
        settings=settings or AppConfig(),
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def manual_clock() -> ManualClock:
    return ManualClock()
