"""
Tests for the SQLite repositories.

What we test
------------
UserRepository:       insert/get_by_id round trip; missing id -> None.
InteractionRepository: get_recent() ordering, type filter, and limit.
ContentRepository:
  - get_by_ids() returns only existing ids; tags normalized.
  - get_tags() batches beyond the IN-chunk size; malformed JSON -> ().
  - get_candidates() excludes viewed/disliked, ineligible, and orders
    newest first with ascending id on ties.
RecommendationLogRepository: append and read back.
BaseRepository.fetchall_in(): empty id list touches nothing.
"""

from __future__ import annotations

from datetime import timedelta

from conftest import FIXED_NOW, make_interaction, make_item, make_user
from interview_recommender.db.repositories.base import BaseRepository, decode_json_list
from interview_recommender.db.repositories.content_repo import ContentRepository
from interview_recommender.db.repositories.interaction_repo import InteractionRepository
from interview_recommender.db.repositories.recommendation_log_repo import (
    RecommendationLogRepository,
)
from interview_recommender.db.repositories.user_repo import UserRepository
from interview_recommender.models.recommendation import RecommendationLog


def _seed_users(conn, *user_ids: int) -> None:
    repo = UserRepository(conn)
    for uid in user_ids:
        repo.insert(make_user(uid))


class TestUserRepository:
    def test_round_trip(self, in_memory_db):
        repo = UserRepository(in_memory_db)
        repo.insert(make_user(1))
        user = repo.get_by_id(1)
        assert user == make_user(1)
        assert repo.count() == 1

    def test_missing_is_none(self, in_memory_db):
        assert UserRepository(in_memory_db).get_by_id(42) is None


class TestInteractionRepository:
    def test_get_recent_newest_first_and_limited(self, in_memory_db):
        _seed_users(in_memory_db, 1)
        content = ContentRepository(in_memory_db)
        for i in range(1, 6):
            content.insert(make_item(i, creator_id=1))
        repo = InteractionRepository(in_memory_db)
        for i in range(1, 6):
            repo.insert(make_interaction(i, "view", minutes_ago=i * 10, duration_watched=i))
        repo.insert(make_interaction(1, "like", minutes_ago=1))

        recent = repo.get_recent(1, "view", 3)

        assert [r.item_id for r in recent] == [1, 2, 3]
        assert all(r.action_type == "view" for r in recent)
        assert recent[0].created_at == FIXED_NOW - timedelta(minutes=10)
        assert repo.count() == 6

    def test_other_users_not_returned(self, in_memory_db):
        _seed_users(in_memory_db, 1, 2)
        ContentRepository(in_memory_db).insert(make_item(1, creator_id=1))
        repo = InteractionRepository(in_memory_db)
        repo.insert(make_interaction(1, "view", user_id=2))
        assert repo.get_recent(1, "view", 10) == []


class TestContentRepository:
    def test_get_by_ids_skips_missing(self, in_memory_db):
        _seed_users(in_memory_db, 1)
        repo = ContentRepository(in_memory_db)
        repo.insert(make_item(1, creator_id=1, tags=["Python", "SQL"]))
        repo.insert(make_item(2, creator_id=1))

        items = repo.get_by_ids([1, 2, 3])

        assert set(items) == {1, 2}
        assert items[1].tags == ("python", "sql")
        assert items[1].created_at == make_item(1).created_at

    def test_get_tags_batches_large_id_lists(self, in_memory_db):
        _seed_users(in_memory_db, 1)
        repo = ContentRepository(in_memory_db)
        for i in range(1, 1201):
            repo.insert(make_item(i, creator_id=1, tags=[f"t{i % 7}"]))

        tags = repo.get_tags(range(1, 1201))

        assert len(tags) == 1200
        assert tags[14] == ("t0",)

    def test_malformed_tag_json_is_empty(self, in_memory_db):
        _seed_users(in_memory_db, 1)
        repo = ContentRepository(in_memory_db)
        repo.insert(make_item(1, creator_id=1))
        in_memory_db.execute("UPDATE interviews SET tags = 'not json' WHERE id = 1;")

        assert repo.get_tags([1]) == {1: ()}
        assert repo.get_by_id(1).tags == ()

    def test_get_candidates(self, in_memory_db):
        _seed_users(in_memory_db, 1, 2)
        repo = ContentRepository(in_memory_db)
        repo.insert(make_item(1, creator_id=2, age_days=1))
        repo.insert(make_item(2, creator_id=2, age_days=2))
        repo.insert(make_item(3, creator_id=2, age_days=3))
        repo.insert(make_item(4, creator_id=2, age_days=3))
        repo.insert(make_item(5, creator_id=2, status="draft"))
        repo.insert(make_item(6, creator_id=2, is_public=False))
        repo.insert(make_item(7, creator_id=2, age_days=0.5))
        interactions = InteractionRepository(in_memory_db)
        interactions.insert(make_interaction(1, "view"))
        interactions.insert(make_interaction(7, "dislike"))
        interactions.insert(make_interaction(2, "like"))

        candidates = repo.get_candidates(1, 10)

        assert [c.item_id for c in candidates] == [2, 3, 4]

    def test_get_candidates_respects_limit(self, in_memory_db):
        _seed_users(in_memory_db, 1)
        repo = ContentRepository(in_memory_db)
        for i in range(1, 11):
            repo.insert(make_item(i, creator_id=1, age_days=i))
        assert [c.item_id for c in repo.get_candidates(1, 3)] == [1, 2, 3]


class TestRecommendationLogRepository:
    def test_append_and_read(self, in_memory_db):
        _seed_users(in_memory_db, 1)
        repo = RecommendationLogRepository(in_memory_db)
        log = RecommendationLog(
            user_id=1,
            recommended_items=(5, 3, 9),
            algorithm_version="1.0",
            created_at=FIXED_NOW,
        )
        assert repo.insert(log) == log.log_id

        (stored,) = repo.get_for_user(1)
        assert stored == log


class TestBaseHelpers:
    def test_fetchall_in_with_no_ids(self, in_memory_db):
        assert BaseRepository(in_memory_db).fetchall_in("SELECT * FROM users WHERE id IN ({ids});", []) == []

    def test_decode_json_list(self):
        assert decode_json_list('["a", "b"]') == ["a", "b"]
        assert decode_json_list(None) == []
        assert decode_json_list("{}") == []
        assert decode_json_list("[oops") == []


class TestMalformedRows:
    def test_unknown_status_skipped_in_bulk_reads(self, in_memory_db):
        _seed_users(in_memory_db, 1)
        repo = ContentRepository(in_memory_db)
        repo.insert(make_item(1, creator_id=1))
        repo.insert(make_item(2, creator_id=1))
        in_memory_db.execute("UPDATE interviews SET status = 'private' WHERE id = 1;")

        assert set(repo.get_by_ids([1, 2])) == {2}

    def test_invalid_candidate_row_skipped(self, in_memory_db):
        _seed_users(in_memory_db, 1, 2)
        repo = ContentRepository(in_memory_db)
        repo.insert(make_item(1, creator_id=2, age_days=1))
        repo.insert(make_item(2, creator_id=2, age_days=2))
        in_memory_db.execute("UPDATE interviews SET view_count = -5 WHERE id = 1;")

        assert [c.item_id for c in repo.get_candidates(1, 10)] == [2]
