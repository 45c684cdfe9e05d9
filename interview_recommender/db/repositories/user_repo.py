"""
Repository for the ``users`` table.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Optional

from interview_recommender.db.repositories.base import BaseRepository, decode_json_list
from interview_recommender.models.content import UserRecord

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository):
    """Read/write access to the ``users`` table."""

    def insert(self, user: UserRecord) -> int:
        """Insert a user, keeping ``user.user_id`` as the primary key.

        Args:
            user: The ``UserRecord`` to persist.

        Returns:
            The ``user_id``.
        """
        self.execute(
            """
            INSERT INTO users (id, username, interests, career_level, industry, subscription_tier)
            VALUES (?, ?, ?, ?, ?, ?);
            """,
            (
                user.user_id,
                user.username,
                json.dumps(list(user.interests)),
                user.career_level,
                user.industry,
                user.subscription_tier,
            ),
        )
        return user.user_id

    def get_by_id(self, user_id: int) -> Optional[UserRecord]:
        """Fetch a user by primary key, or ``None`` if absent."""
        row = self.fetchone("SELECT * FROM users WHERE id = ?;", (user_id,))
        return _row_to_user(row) if row else None

    def count(self) -> int:
        """Return total number of users."""
        row = self.fetchone("SELECT COUNT(*) AS n FROM users;")
        assert row is not None
        return int(row["n"])


def _row_to_user(row: sqlite3.Row) -> UserRecord:
    return UserRecord(
        user_id=row["id"],
        username=row["username"],
        interests=tuple(decode_json_list(row["interests"])),
        career_level=row["career_level"],
        industry=row["industry"],
        subscription_tier=row["subscription_tier"],
    )
