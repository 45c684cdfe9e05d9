"""
Repository for the ``user_interactions`` table.

History reads are always most-recent-first and bounded by an explicit
``limit``; ties on ``created_at`` fall back to insertion order (newest row
first) so the window is deterministic.
"""

from __future__ import annotations

import logging
import sqlite3

from interview_recommender.db.repositories.base import BaseRepository
from interview_recommender.models.content import Interaction
from interview_recommender.utils.time_utils import format_db_timestamp

logger = logging.getLogger(__name__)


class InteractionRepository(BaseRepository):
    """Read/write access to the ``user_interactions`` table."""

    def insert(self, interaction: Interaction) -> int:
        """Record one interaction.

        Returns:
            The new row id.
        """
        cursor = self.execute(
            """
            INSERT INTO user_interactions (
                user_id, interview_id, action_type, duration_watched, rating, created_at
            ) VALUES (?, ?, ?, ?, ?, ?);
            """,
            (
                interaction.user_id,
                interaction.item_id,
                interaction.action_type,
                interaction.duration_watched,
                interaction.rating,
                format_db_timestamp(interaction.created_at),
            ),
        )
        return int(cursor.lastrowid)

    def get_recent(self, user_id: int, action_type: str, limit: int) -> list[Interaction]:
        """Fetch the ``limit`` most recent interactions of one type.

        Args:
            user_id: Acting user.
            action_type: e.g. ``"view"`` or ``"like"``.
            limit: Maximum rows to return.

        Returns:
            Interactions ordered by ``created_at`` descending.
        """
        rows = self.fetchall(
            """
            SELECT user_id, interview_id, action_type, duration_watched, rating, created_at
            FROM user_interactions
            WHERE user_id = ? AND action_type = ?
            ORDER BY created_at DESC, id DESC
            LIMIT ?;
            """,
            (user_id, action_type, limit),
        )
        return [_row_to_interaction(r) for r in rows]

    def count(self) -> int:
        """Return total number of interactions."""
        row = self.fetchone("SELECT COUNT(*) AS n FROM user_interactions;")
        assert row is not None
        return int(row["n"])


def _row_to_interaction(row: sqlite3.Row) -> Interaction:
    return Interaction(
        user_id=row["user_id"],
        item_id=row["interview_id"],
        action_type=row["action_type"],
        duration_watched=row["duration_watched"] or 0,
        rating=row["rating"],
        created_at=row["created_at"],
    )
