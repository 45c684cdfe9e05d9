"""
SQLite connection management.

``open_connection()`` returns a configured connection:
  - Foreign key enforcement ON (OFF by default in SQLite).
  - WAL journal mode so worker-thread readers do not block each other.
  - Busy timeout to ride out short write locks (audit-log inserts).
  - ``sqlite3.Row`` factory so rows behave like dicts.

``get_connection()`` wraps it in a context manager that commits on clean
exit, rolls back on exception, and always closes.

Connections are never shared across threads: the async store facade opens
one per call inside the worker thread that uses it.

Usage::

    from interview_recommender.db.connection import get_connection

    with get_connection("data/db/interview_recs.db") as conn:
        UserRepository(conn).get_by_id(42)
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

logger = logging.getLogger(__name__)


def open_connection(
    db_path: str,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> sqlite3.Connection:
    """Open and configure a SQLite connection.

    The database file (and any parent directories) are created if they do
    not already exist. WAL is skipped for ``":memory:"`` databases.

    Args:
        db_path: Path to the SQLite database file, or ``":memory:"``.
        wal_mode: If ``True``, enable WAL journal mode.
        busy_timeout_ms: Milliseconds to wait on a locked database before
            raising ``OperationalError``.

    Raises:
        sqlite3.OperationalError: If the database cannot be opened.
    """
    in_memory = db_path == ":memory:"
    if not in_memory:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, timeout=busy_timeout_ms / 1000)
    conn.row_factory = sqlite3.Row
    try:
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute(f"PRAGMA busy_timeout = {busy_timeout_ms};")
        if wal_mode and not in_memory:
            conn.execute("PRAGMA journal_mode = WAL;")
    except sqlite3.Error:
        conn.close()
        raise
    return conn


@contextmanager
def get_connection(
    db_path: str,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> Generator[sqlite3.Connection, None, None]:
    """Context manager yielding a configured SQLite connection.

    The connection is committed on clean exit and rolled back on exception.

    Args:
        db_path: Path to the SQLite database file.
        wal_mode: If ``True``, enable WAL journal mode.
        busy_timeout_ms: Busy timeout in milliseconds.

    Yields:
        An open, configured ``sqlite3.Connection``.

    Raises:
        sqlite3.OperationalError: If the database cannot be opened or is locked.
    """
    conn = open_connection(db_path, wal_mode=wal_mode, busy_timeout_ms=busy_timeout_ms)
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
