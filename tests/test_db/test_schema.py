"""Tests for SQLite schema — idempotency, table/index creation, FK enforcement."""

from __future__ import annotations

import sqlite3

import pytest

from interview_recommender.db.schema import (
    ALL_TABLE_NAMES,
    apply_schema,
    get_existing_indexes,
    get_existing_tables,
)


class TestApplySchema:
    def test_all_tables_created(self, in_memory_db):
        tables = get_existing_tables(in_memory_db)
        for expected_table in ALL_TABLE_NAMES:
            assert expected_table in tables, (
                f"Expected table '{expected_table}' not found in database. "
                f"Found: {tables}"
            )

    def test_idempotent_double_apply(self, in_memory_db):
        """apply_schema() called twice must not raise errors."""
        apply_schema(in_memory_db)
        tables = get_existing_tables(in_memory_db)
        assert set(ALL_TABLE_NAMES) <= set(tables)

    def test_key_indexes_created(self, in_memory_db):
        indexes = get_existing_indexes(in_memory_db)
        for idx in (
            "idx_interactions_user_action_time",
            "idx_interactions_user_item",
            "idx_interviews_eligible",
            "idx_rec_logs_user_time",
        ):
            assert idx in indexes, f"Expected index '{idx}' not found. Found: {indexes}"


class TestDefaults:
    def test_interview_status_defaults_to_draft(self, in_memory_db):
        in_memory_db.execute("INSERT INTO users (id, username) VALUES (1, 'ada');")
        in_memory_db.execute(
            "INSERT INTO interviews (id, category, creator_id) VALUES (10, 'tech', 1);"
        )
        row = in_memory_db.execute("SELECT status, is_public FROM interviews WHERE id = 10;").fetchone()
        assert row["status"] == "draft"
        assert row["is_public"] == 1


class TestForeignKeyEnforcement:
    def test_fk_enforcement_is_on(self, in_memory_db):
        row = in_memory_db.execute("PRAGMA foreign_keys;").fetchone()
        assert row[0] == 1, "PRAGMA foreign_keys should be 1 (enabled)"

    def test_interaction_requires_existing_interview(self, in_memory_db):
        in_memory_db.execute("INSERT INTO users (id, username) VALUES (1, 'ada');")
        with pytest.raises(sqlite3.IntegrityError):
            in_memory_db.execute(
                "INSERT INTO user_interactions (user_id, interview_id, action_type) "
                "VALUES (1, 999, 'view');"
            )
