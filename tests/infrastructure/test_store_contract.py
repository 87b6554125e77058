"""
Contract tests run against both player stores (JSON and SQL on SQLite).

Covers:
- upsert create / update, omitted fields preserved, baseline defaults
- case-insensitive username uniqueness, self-rename allowed
- conditional insert signals
- count_ahead agrees with the canonical sort
"""
import pytest

from leaderboard.domain import ranking
from leaderboard.domain.enums import GameMode
from leaderboard.domain.errors import PlayerAlreadyExists, UsernameConflict


class TestUpsert:
    def test_creates_with_baseline(self, any_store):
        p = any_store.upsert("dev-1")
        assert p.player_id == "dev-1"
        assert p.rating_classic == 0
        assert p.rating_infinity == 0
        assert p.achievements_count == 0
        assert p.created_at == p.updated_at

    def test_get_returns_stored_player(self, any_store):
        any_store.upsert("dev-1", username="Alice", rating_classic=10)
        p = any_store.get("dev-1")
        assert p.username == "Alice"
        assert p.rating_classic == 10

    def test_get_missing_returns_none(self, any_store):
        assert any_store.get("ghost") is None

    def test_omitted_fields_preserved(self, any_store):
        any_store.upsert("dev-1", username="Alice", rating_classic=10, rating_infinity=20,
                         achievements_count=3)
        p = any_store.upsert("dev-1", rating_classic=15)
        assert p.rating_classic == 15
        assert p.rating_infinity == 20
        assert p.achievements_count == 3
        assert p.username == "Alice"

    def test_updated_at_refreshed_created_at_kept(self, any_store):
        first = any_store.upsert("dev-1")
        second = any_store.upsert("dev-1", rating_classic=1)
        assert second.created_at == first.created_at
        assert second.updated_at > first.updated_at

    def test_single_record_per_player(self, any_store):
        any_store.upsert("dev-1", rating_classic=1)
        any_store.upsert("dev-1", rating_classic=2)
        assert any_store.count() == 1
        assert [p.rating_classic for p in any_store.get_all()] == [2]


class TestUsernameUniqueness:
    def test_conflict_is_case_insensitive(self, any_store):
        any_store.upsert("dev-1", username="Alice")
        with pytest.raises(UsernameConflict):
            any_store.upsert("dev-2", username="aLiCe")

    def test_conflict_leaves_store_unchanged(self, any_store):
        any_store.upsert("dev-1", username="Alice")
        any_store.upsert("dev-2", username="Bob", rating_classic=5)
        with pytest.raises(UsernameConflict):
            any_store.upsert("dev-2", username="ALICE", rating_classic=99)
        p = any_store.get("dev-2")
        assert p.username == "Bob"
        assert p.rating_classic == 5

    def test_self_rename_is_not_a_conflict(self, any_store):
        any_store.upsert("dev-1", username="Alice")
        p = any_store.upsert("dev-1", username="ALICE")
        assert p.username == "ALICE"

    def test_username_exists(self, any_store):
        any_store.upsert("dev-1", username="Alice")
        assert any_store.username_exists("alice")
        assert not any_store.username_exists("alice", exclude_player_id="dev-1")
        assert not any_store.username_exists("Bob")

    def test_many_players_without_username(self, any_store):
        any_store.upsert("dev-1")
        any_store.upsert("dev-2")
        assert any_store.count() == 2


class TestConditionalInsert:
    def test_insert_new_player(self, any_store):
        p = any_store.insert("dev-1", "Alice", rating_infinity=7)
        assert p.username == "Alice"
        assert p.rating_infinity == 7

    def test_insert_existing_player_raises(self, any_store):
        any_store.insert("dev-1", "Alice")
        with pytest.raises(PlayerAlreadyExists):
            any_store.insert("dev-1", "Other")

    def test_insert_taken_username_raises(self, any_store):
        any_store.insert("dev-1", "Alice")
        with pytest.raises(UsernameConflict):
            any_store.insert("dev-2", "ALICE")
        assert any_store.get("dev-2") is None


class TestCountAhead:
    def test_matches_canonical_order(self, any_store):
        rows = [
            ("a", 100, 2), ("b", 100, 5), ("c", 300, 0),
            ("d", 100, 5), ("e", 0, 9), ("f", 300, 0),
        ]
        for pid, rating, ach in rows:
            any_store.upsert(pid, rating_classic=rating, rating_infinity=ach,
                             achievements_count=ach)
        players = any_store.get_all()
        for mode in GameMode:
            ordered = ranking.sort_players(players, mode)
            for p in players:
                assert any_store.count_ahead(p, mode) + 1 == \
                    ranking.position_of(ordered, p.player_id)


class TestBaselineDefaults:
    def test_configured_baseline_applies_on_create_only(self, clock):
        from leaderboard.infrastructure.repositories.player_repository import PlayerRepository

        store = PlayerRepository(
            data_path=None,
            default_ratings={GameMode.CLASSIC: 1000, GameMode.INFINITY: 1000},
            clock=clock,
        )
        p = store.upsert("dev-1", rating_infinity=5)
        assert p.rating_classic == 1000
        assert p.rating_infinity == 5
        p = store.upsert("dev-1")
        assert p.rating_classic == 1000
