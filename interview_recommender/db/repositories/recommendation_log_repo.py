"""
Repository for the append-only ``recommendation_logs`` audit table.
"""

from __future__ import annotations

import json
import logging
import sqlite3

from interview_recommender.db.repositories.base import BaseRepository
from interview_recommender.models.recommendation import RecommendationLog
from interview_recommender.utils.time_utils import format_db_timestamp

logger = logging.getLogger(__name__)


class RecommendationLogRepository(BaseRepository):
    """Append and audit access to ``recommendation_logs``."""

    def insert(self, log: RecommendationLog) -> str:
        """Append one audit record.

        Returns:
            The record's ``log_id``.
        """
        self.execute(
            """
            INSERT INTO recommendation_logs (
                id, user_id, recommended_items, algorithm_version, created_at
            ) VALUES (?, ?, ?, ?, ?);
            """,
            (
                log.log_id,
                log.user_id,
                json.dumps(list(log.recommended_items)),
                log.algorithm_version,
                format_db_timestamp(log.created_at),
            ),
        )
        return log.log_id

    def get_for_user(self, user_id: int) -> list[RecommendationLog]:
        """Audit read: all records for a user, newest first."""
        rows = self.fetchall(
            """
            SELECT * FROM recommendation_logs
            WHERE user_id = ?
            ORDER BY created_at DESC;
            """,
            (user_id,),
        )
        return [_row_to_log(r) for r in rows]


def _row_to_log(row: sqlite3.Row) -> RecommendationLog:
    return RecommendationLog(
        log_id=row["id"],
        user_id=row["user_id"],
        recommended_items=tuple(int(i) for i in json.loads(row["recommended_items"])),
        algorithm_version=row["algorithm_version"],
        created_at=row["created_at"],
    )
