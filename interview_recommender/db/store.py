"""
Async relational-store facade used by the recommendation engine.

``RecommendationStore`` is the read/append contract the engine depends on;
``SqliteRecommendationStore`` implements it over the repositories.

Every SQLite call runs via ``asyncio.to_thread`` with its own connection,
opened and closed inside the worker thread, so concurrent coroutines never
share a ``sqlite3.Connection``. Driver errors are re-raised as
``StoreFailureError("database")``.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from collections.abc import Callable, Sequence
from typing import Optional, Protocol, TypeVar

from interview_recommender.db.connection import get_connection
from interview_recommender.db.repositories.content_repo import ContentRepository
from interview_recommender.db.repositories.interaction_repo import InteractionRepository
from interview_recommender.db.repositories.recommendation_log_repo import (
    RecommendationLogRepository,
)
from interview_recommender.db.repositories.user_repo import UserRepository
from interview_recommender.errors import StoreFailureError
from interview_recommender.models.content import ContentItem, Interaction, UserRecord
from interview_recommender.models.recommendation import RecommendationLog

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RecommendationStore(Protocol):
    """Relational data the engine reads, plus the audit-log append."""

    async def get_user(self, user_id: int) -> Optional[UserRecord]: ...

    async def get_recent_interactions(
        self, user_id: int, action_type: str, limit: int
    ) -> list[Interaction]: ...

    async def get_items(self, item_ids: Sequence[int]) -> dict[int, ContentItem]: ...

    async def get_item_tags(self, item_ids: Sequence[int]) -> dict[int, tuple[str, ...]]: ...

    async def get_candidate_items(self, user_id: int, limit: int) -> list[ContentItem]: ...

    async def insert_recommendation_log(self, log: RecommendationLog) -> None: ...


class SqliteRecommendationStore:
    """``RecommendationStore`` backed by a SQLite database file.

    Args:
        db_path: Path to the SQLite database (must not be ``":memory:"``,
            since each call opens a fresh connection).
        wal_mode: Enable WAL journal mode on each connection.
        busy_timeout_ms: SQLite busy timeout.
    """

    def __init__(self, db_path: str, wal_mode: bool = True, busy_timeout_ms: int = 5000) -> None:
        if db_path == ":memory:":
            raise ValueError(
                "SqliteRecommendationStore needs a file-backed database; "
                "':memory:' would give every call an empty database."
            )
        self.db_path = db_path
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms

    # ── Engine contract ───────────────────────────────────────────────────────

    async def get_user(self, user_id: int) -> Optional[UserRecord]:
        return await self._run(lambda conn: UserRepository(conn).get_by_id(user_id))

    async def get_recent_interactions(
        self, user_id: int, action_type: str, limit: int
    ) -> list[Interaction]:
        return await self._run(
            lambda conn: InteractionRepository(conn).get_recent(user_id, action_type, limit)
        )

    async def get_items(self, item_ids: Sequence[int]) -> dict[int, ContentItem]:
        if not item_ids:
            return {}
        return await self._run(lambda conn: ContentRepository(conn).get_by_ids(item_ids))

    async def get_item_tags(self, item_ids: Sequence[int]) -> dict[int, tuple[str, ...]]:
        if not item_ids:
            return {}
        return await self._run(lambda conn: ContentRepository(conn).get_tags(item_ids))

    async def get_candidate_items(self, user_id: int, limit: int) -> list[ContentItem]:
        return await self._run(
            lambda conn: ContentRepository(conn).get_candidates(user_id, limit)
        )

    async def insert_recommendation_log(self, log: RecommendationLog) -> None:
        await self._run(lambda conn: RecommendationLogRepository(conn).insert(log))

    # ── Helpers ───────────────────────────────────────────────────────────────

    async def _run(self, fn: Callable[[sqlite3.Connection], T]) -> T:
        return await asyncio.to_thread(self._run_sync, fn)

    def _run_sync(self, fn: Callable[[sqlite3.Connection], T]) -> T:
        try:
            with get_connection(
                self.db_path,
                wal_mode=self.wal_mode,
                busy_timeout_ms=self.busy_timeout_ms,
            ) as conn:
                return fn(conn)
        except sqlite3.Error as exc:
            raise StoreFailureError("database", str(exc)) from exc
