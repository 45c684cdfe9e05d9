"""
Tests for interview_recommender/recommendations/profile_builder.py.

What we test
------------
duration_preference():
  - Empty view window defaults to "medium".
  - Mean watch below 10 min -> "short"; above 30 min -> "long".

profile_strength():
  - 0.7·min(views/50, 1) + 0.3·min(likes/20, 1), saturating at 1.0.

build_profile():
  - Category counts come from views; creator counts from likes.
  - Windows are bounded by ``view_window`` / ``like_window``.
  - history_tags is the tag union of the most recent viewed items,
    fetched in a single batched lookup.
  - Unknown user -> empty profile, no exception, not cached.
  - Second call is served from the profile cache.
  - Tag or item-metadata lookup failure degrades instead of raising.
  - History read failure surfaces as StoreFailureError.
"""

from __future__ import annotations

import asyncio

import pytest

from conftest import FakeStore, make_ctx, make_interaction, make_item, make_user
from interview_recommender.config import AppConfig, RankingConfig
from interview_recommender.errors import StoreFailureError
from interview_recommender.recommendations.profile_builder import (
    build_profile,
    duration_preference,
    profile_strength,
)


def _history_store() -> FakeStore:
    items = [
        make_item(1, category="tech", creator_id=100, tags=["python", "sql"]),
        make_item(2, category="tech", creator_id=100, tags=["python"]),
        make_item(3, category="career", creator_id=200, tags=["negotiation"]),
        make_item(4, category="career", creator_id=200),
    ]
    interactions = [
        make_interaction(1, "view", duration_watched=700, minutes_ago=10),
        make_interaction(2, "view", duration_watched=700, minutes_ago=20),
        make_interaction(3, "view", duration_watched=700, minutes_ago=30),
        make_interaction(3, "like", minutes_ago=31),
        make_interaction(4, "like", minutes_ago=40),
        make_interaction(1, "like", minutes_ago=50),
    ]
    return FakeStore(users=[make_user(1)], items=items, interactions=interactions)


class TestDurationPreference:
    def test_no_views_is_medium(self):
        assert duration_preference([]) == "medium"

    def test_short_mean(self):
        views = [make_interaction(i, duration_watched=300) for i in range(3)]
        assert duration_preference(views) == "short"

    def test_long_mean(self):
        views = [make_interaction(i, duration_watched=2400) for i in range(3)]
        assert duration_preference(views) == "long"

    def test_medium_mean(self):
        views = [make_interaction(i, duration_watched=700) for i in range(5)]
        assert duration_preference(views) == "medium"


class TestProfileStrength:
    def test_zero_history(self):
        assert profile_strength(0, 0) == 0.0

    def test_partial(self):
        assert profile_strength(25, 10) == pytest.approx(0.7 * 0.5 + 0.3 * 0.5)

    def test_saturates(self):
        assert profile_strength(500, 500) == pytest.approx(1.0)


class TestBuildProfile:
    def test_affinities_from_views_and_likes(self):
        store = _history_store()
        profile = asyncio.run(build_profile(make_ctx(store), 1))

        assert profile.categories == {"tech": 2, "career": 1}
        assert profile.creators == {200: 2, 100: 1}
        assert profile.duration_preference == "medium"
        assert profile.profile_strength == pytest.approx(0.7 * 3 / 50 + 0.3 * 3 / 20)
        assert profile.user is not None and profile.user.username == "user1"
        assert [v.item_id for v in profile.view_history] == [1, 2, 3]

    def test_history_tags_single_batched_lookup(self):
        store = _history_store()
        profile = asyncio.run(build_profile(make_ctx(store), 1))
        assert profile.history_tags == ("negotiation", "python", "sql")
        assert store.calls["get_item_tags"] == 1

    def test_windows_are_bounded(self):
        items = [make_item(i, category=f"cat{i % 3}") for i in range(30)]
        views = [make_interaction(i, "view", minutes_ago=i + 1) for i in range(30)]
        store = FakeStore(users=[make_user(1)], items=items, interactions=views)
        settings = AppConfig(ranking=RankingConfig(view_window=10, tag_history_window=5))

        profile = asyncio.run(build_profile(make_ctx(store, settings=settings), 1))

        assert len(profile.view_history) == 10
        assert sum(profile.categories.values()) == 10
        # most recent first
        assert profile.view_history[0].item_id == 0

    def test_unknown_user_gets_empty_profile(self):
        store = _history_store()
        ctx = make_ctx(store)
        profile = asyncio.run(build_profile(ctx, 999))

        assert profile.is_empty
        assert profile.user is None
        assert profile.duration_preference == "medium"
        assert profile.profile_strength == 0.0
        assert asyncio.run(ctx.cache.get_profile(999)) is None

    def test_second_call_served_from_cache(self):
        store = _history_store()
        ctx = make_ctx(store)

        first = asyncio.run(build_profile(ctx, 1))
        second = asyncio.run(build_profile(ctx, 1))

        assert second == first
        assert store.calls["get_recent_interactions"] == 2  # views + likes, once

    def test_tag_failure_degrades_to_no_tags(self):
        store = _history_store()
        store.fail_tags = True
        profile = asyncio.run(build_profile(make_ctx(store), 1))
        assert profile.history_tags == ()
        assert profile.categories == {"tech": 2, "career": 1}

    def test_item_metadata_failure_degrades(self):
        store = _history_store()
        store.fail_items = True
        profile = asyncio.run(build_profile(make_ctx(store), 1))
        assert profile.categories == {}
        assert profile.creators == {}
        assert len(profile.view_history) == 3

    @pytest.mark.parametrize("flag", ["fail_items", "fail_tags"])
    def test_degraded_profile_not_cached(self, flag):
        store = _history_store()
        ctx = make_ctx(store)
        setattr(store, flag, True)

        asyncio.run(build_profile(ctx, 1))
        assert asyncio.run(ctx.cache.get_profile(1)) is None

        setattr(store, flag, False)
        recovered = asyncio.run(build_profile(ctx, 1))

        assert recovered.categories == {"tech": 2, "career": 1}
        assert recovered.history_tags == ("negotiation", "python", "sql")
        assert asyncio.run(ctx.cache.get_profile(1)) == recovered

    def test_missing_item_metadata_is_skipped(self):
        store = _history_store()
        del store.items[3]
        profile = asyncio.run(build_profile(make_ctx(store), 1))
        assert profile.categories == {"tech": 2}
        assert profile.creators == {200: 1, 100: 1}

    def test_history_failure_surfaces(self):
        store = _history_store()
        store.fail_history = True
        with pytest.raises(StoreFailureError) as exc_info:
            asyncio.run(build_profile(make_ctx(store), 1))
        assert exc_info.value.store == "database"
