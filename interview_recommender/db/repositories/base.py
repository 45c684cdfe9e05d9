"""
Base repository providing shared SQLite execution helpers.

All repositories inherit from ``BaseRepository`` and receive a
``sqlite3.Connection`` at construction time. The connection is assumed
to be opened and managed by the caller (typically via ``get_connection()``).

Design:
  - No ORM — all SQL is explicit and lives in repository methods.
  - Repositories speak Pydantic models, not raw dicts.
  - Batched ``IN (...)`` lookups go through ``fetchall_in()``, which chunks
    the id list below SQLite's bound-parameter limit.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterable, Sequence
from typing import Any, Optional

logger = logging.getLogger(__name__)

# SQLITE_MAX_VARIABLE_NUMBER is 999 on older builds; stay well below it.
_IN_CHUNK_SIZE = 500


class BaseRepository:
    """Shared SQL execution helpers for all repository classes.

    Attributes:
        conn: The active ``sqlite3.Connection``.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def execute(
        self,
        sql: str,
        params: tuple[Any, ...] | dict[str, Any] = (),
    ) -> sqlite3.Cursor:
        """Execute a single SQL statement.

        Args:
            sql: SQL string with ``?`` or ``:name`` placeholders.
            params: Positional tuple or named dict of parameters.

        Returns:
            The resulting ``sqlite3.Cursor``.
        """
        logger.debug("SQL: %s | params: %s", sql.strip(), params)
        return self.conn.execute(sql, params)

    def fetchone(
        self,
        sql: str,
        params: tuple[Any, ...] | dict[str, Any] = (),
    ) -> Optional[sqlite3.Row]:
        """Execute a query and return the first row, or ``None``."""
        return self.execute(sql, params).fetchone()

    def fetchall(
        self,
        sql: str,
        params: tuple[Any, ...] | dict[str, Any] = (),
    ) -> list[sqlite3.Row]:
        """Execute a query and return all rows."""
        return self.execute(sql, params).fetchall()

    def fetchall_in(
        self,
        sql_template: str,
        ids: Iterable[int],
        params: Sequence[Any] = (),
    ) -> list[sqlite3.Row]:
        """Run a query with an ``IN ({ids})`` clause over many ids.

        ``sql_template`` must contain a single ``{ids}`` marker where the
        placeholder list goes. Any ``params`` are bound before the ids.
        Duplicate ids are collapsed; an empty id list returns ``[]``
        without touching the database.

        Args:
            sql_template: SELECT SQL with an ``{ids}`` marker.
            ids: Ids to look up.
            params: Extra positional parameters preceding the ids.

        Returns:
            Rows from all chunks, in chunk order.
        """
        unique_ids = list(dict.fromkeys(ids))
        rows: list[sqlite3.Row] = []
        for start in range(0, len(unique_ids), _IN_CHUNK_SIZE):
            chunk = unique_ids[start:start + _IN_CHUNK_SIZE]
            placeholders = ", ".join("?" for _ in chunk)
            sql = sql_template.format(ids=placeholders)
            rows.extend(self.fetchall(sql, (*params, *chunk)))
        return rows


def decode_json_list(raw: Optional[str]) -> list[str]:
    """Decode a JSON array column; malformed or non-list values yield ``[]``."""
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        logger.debug("Ignoring malformed JSON list column: %r", raw)
        return []
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None]
