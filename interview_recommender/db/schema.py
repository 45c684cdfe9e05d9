"""
SQLite schema DDL — all CREATE TABLE and CREATE INDEX statements.

All statements use ``IF NOT EXISTS`` so ``apply_schema()`` is **idempotent**:
safe to call on an already-initialized database (e.g. after restart or in tests).

Only the tables the recommendation engine reads or writes are declared here:
  1. users                (no FKs)
  2. interviews           (→ users as creator)
  3. user_interactions    (→ users, interviews)
  4. recommendation_logs  (→ users)

``interviews.tags`` and ``users.interests`` hold JSON arrays of strings.
``recommendation_logs.recommended_items`` holds a JSON array of interview ids.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

# ── DDL statements ─────────────────────────────────────────────────────────────

_DDL_USERS = """
CREATE TABLE IF NOT EXISTS users (
    id                  INTEGER PRIMARY KEY,
    username            TEXT    NOT NULL UNIQUE,
    interests           TEXT,
    career_level        TEXT,
    industry            TEXT,
    subscription_tier   TEXT    NOT NULL DEFAULT 'free',
    created_at          TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

_DDL_INTERVIEWS = """
CREATE TABLE IF NOT EXISTS interviews (
    id              INTEGER PRIMARY KEY,
    title           TEXT    NOT NULL DEFAULT '',
    category        TEXT    NOT NULL,
    creator_id      INTEGER NOT NULL REFERENCES users(id),
    duration        INTEGER NOT NULL DEFAULT 0,
    view_count      INTEGER NOT NULL DEFAULT 0,
    like_count      INTEGER NOT NULL DEFAULT 0,
    tags            TEXT,
    status          TEXT    NOT NULL DEFAULT 'draft',
    is_public       INTEGER NOT NULL DEFAULT 1,
    created_at      TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

_DDL_INTERVIEWS_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_interviews_eligible
    ON interviews(status, is_public, created_at);
"""

_DDL_USER_INTERACTIONS = """
CREATE TABLE IF NOT EXISTS user_interactions (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id             INTEGER NOT NULL REFERENCES users(id),
    interview_id        INTEGER NOT NULL REFERENCES interviews(id),
    action_type         TEXT    NOT NULL,
    duration_watched    INTEGER NOT NULL DEFAULT 0,
    rating              INTEGER,
    created_at          TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

_DDL_USER_INTERACTIONS_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_interactions_user_action_time
    ON user_interactions(user_id, action_type, created_at);
CREATE INDEX IF NOT EXISTS idx_interactions_user_item
    ON user_interactions(user_id, interview_id);
"""

_DDL_RECOMMENDATION_LOGS = """
CREATE TABLE IF NOT EXISTS recommendation_logs (
    id                  TEXT    PRIMARY KEY,
    user_id             INTEGER NOT NULL REFERENCES users(id),
    recommended_items   TEXT    NOT NULL,
    algorithm_version   TEXT    NOT NULL,
    created_at          TEXT    NOT NULL
);
"""

_DDL_RECOMMENDATION_LOGS_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_rec_logs_user_time
    ON recommendation_logs(user_id, created_at);
"""

_ALL_DDL = [
    _DDL_USERS,
    _DDL_INTERVIEWS,
    _DDL_INTERVIEWS_INDEXES,
    _DDL_USER_INTERACTIONS,
    _DDL_USER_INTERACTIONS_INDEXES,
    _DDL_RECOMMENDATION_LOGS,
    _DDL_RECOMMENDATION_LOGS_INDEXES,
]

# Table names for introspection / tests
ALL_TABLE_NAMES = [
    "users",
    "interviews",
    "user_interactions",
    "recommendation_logs",
]


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply all DDL statements to ``conn``.

    Idempotent — safe to call on an already-initialized database.

    Args:
        conn: An open ``sqlite3.Connection`` (FK enforcement should be ON).
    """
    logger.debug("Applying schema to database...")

    for ddl in _ALL_DDL:
        for statement in _split_ddl(ddl):
            conn.execute(statement)

    conn.commit()
    logger.info("Schema applied: %d tables, indexes created/verified.", len(ALL_TABLE_NAMES))


def _split_ddl(ddl: str) -> list[str]:
    """Split a multi-statement DDL block on semicolons."""
    return [s.strip() for s in ddl.split(";") if s.strip()]


def get_existing_tables(conn: sqlite3.Connection) -> list[str]:
    """Return table names present in the database, sorted alphabetically."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]


def get_existing_indexes(conn: sqlite3.Connection) -> list[str]:
    """Return user-defined index names, sorted alphabetically."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='index' AND name LIKE 'idx_%' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]
