"""
Repository for the ``interviews`` table — the recommendable content catalog.

Three read paths serve the engine:
  - ``get_by_ids()``        bulk metadata for history items (profile build)
  - ``get_tags()``          bulk tag lookup for history items (tag similarity)
  - ``get_candidates()``    the eligible, not-yet-seen pool for one user
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterable

from pydantic import ValidationError

from interview_recommender.db.repositories.base import BaseRepository, decode_json_list
from interview_recommender.models.content import (
    EXCLUDING_ACTIONS,
    PUBLISHED_STATUS,
    ContentItem,
)
from interview_recommender.utils.time_utils import format_db_timestamp

logger = logging.getLogger(__name__)

_ITEM_COLUMNS = """
    id, title, category, creator_id, duration, view_count, like_count,
    tags, status, is_public, created_at
"""


class ContentRepository(BaseRepository):
    """Read/write access to the ``interviews`` table."""

    def insert(self, item: ContentItem) -> int:
        """Insert an interview, keeping ``item.item_id`` as the primary key.

        Returns:
            The ``item_id``.
        """
        self.execute(
            """
            INSERT INTO interviews (
                id, title, category, creator_id, duration, view_count,
                like_count, tags, status, is_public, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                item.item_id,
                item.title,
                item.category,
                item.creator_id,
                item.duration,
                item.view_count,
                item.like_count,
                json.dumps(list(item.tags)),
                item.status,
                int(item.is_public),
                format_db_timestamp(item.created_at),
            ),
        )
        return item.item_id

    def get_by_id(self, item_id: int) -> ContentItem | None:
        """Fetch one interview, or ``None``."""
        row = self.fetchone(f"SELECT {_ITEM_COLUMNS} FROM interviews WHERE id = ?;", (item_id,))
        return _row_to_item(row) if row else None

    def get_by_ids(self, item_ids: Iterable[int]) -> dict[int, ContentItem]:
        """Bulk-fetch interviews by id, regardless of status.

        Ids with no row, or whose row fails validation, are absent from the
        result.
        """
        rows = self.fetchall_in(
            f"SELECT {_ITEM_COLUMNS} FROM interviews WHERE id IN ({{ids}});",
            item_ids,
        )
        return {item.item_id: item for item in _rows_to_items(rows)}

    def get_tags(self, item_ids: Iterable[int]) -> dict[int, tuple[str, ...]]:
        """Bulk-fetch the tag list of each interview in one batched query."""
        rows = self.fetchall_in(
            "SELECT id, tags FROM interviews WHERE id IN ({ids});",
            item_ids,
        )
        return {
            int(r["id"]): tuple(sorted({t.strip().lower() for t in decode_json_list(r["tags"]) if t.strip()}))
            for r in rows
        }

    def get_candidates(self, user_id: int, limit: int) -> list[ContentItem]:
        """Return eligible interviews the user has not viewed or disliked.

        Eligible means ``status = 'published'`` and ``is_public = 1``.
        Ordered newest first (ties: lower id first), at most ``limit`` rows.
        """
        placeholders = ", ".join("?" for _ in EXCLUDING_ACTIONS)
        rows = self.fetchall(
            f"""
            SELECT {_ITEM_COLUMNS}
            FROM interviews i
            WHERE i.status = ?
              AND i.is_public = 1
              AND i.id NOT IN (
                  SELECT interview_id FROM user_interactions
                  WHERE user_id = ? AND action_type IN ({placeholders})
              )
            ORDER BY i.created_at DESC, i.id ASC
            LIMIT ?;
            """,
            (PUBLISHED_STATUS, user_id, *EXCLUDING_ACTIONS, limit),
        )
        return _rows_to_items(rows)

    def count(self) -> int:
        """Return total number of interviews."""
        row = self.fetchone("SELECT COUNT(*) AS n FROM interviews;")
        assert row is not None
        return int(row["n"])


def _rows_to_items(rows: Iterable[sqlite3.Row]) -> list[ContentItem]:
    """Convert rows, skipping (and logging) any that fail validation."""
    items: list[ContentItem] = []
    for row in rows:
        try:
            items.append(_row_to_item(row))
        except ValidationError as exc:
            logger.warning(
                "Skipping malformed interview row id=%s: %s", row["id"], exc.errors()[0]["msg"],
                extra={"item_id": row["id"]},
            )
    return items


def _row_to_item(row: sqlite3.Row) -> ContentItem:
    return ContentItem(
        item_id=row["id"],
        title=row["title"] or "",
        category=row["category"],
        creator_id=row["creator_id"],
        duration=row["duration"] or 0,
        view_count=row["view_count"] or 0,
        like_count=row["like_count"] or 0,
        created_at=row["created_at"],
        tags=decode_json_list(row["tags"]),
        status=row["status"],
        is_public=bool(row["is_public"]),
    )
