"""
Tests for LeaderboardService orchestration.

Covers:
- submit_score: validation before store access, creation with generated name,
  idempotence, rank in the response
- register_or_update: omitted fields preserved, baseline on create
- read views: leaderboard / top / me / around
"""
import pytest

from leaderboard.application.leaderboard_service import LeaderboardService
from leaderboard.application.ranking_engine import RankingEngine
from leaderboard.domain.errors import (
    BadFormat,
    BadMode,
    InvalidRequest,
    PlayerNotFound,
    UsernameTaken,
)
from leaderboard.domain.invariant import MAX_COUNTER
from tests.conftest import make_registry


class TestSubmitScore:
    def test_creates_player_with_generated_name(self, service, store):
        result = service.submit_score("dev-1", "classic", 100, 2)
        assert result["player"]["username"] == "Player21111"
        assert result["rank"] == 1
        assert store.get("dev-1").rating_classic == 100

    def test_only_the_requested_mode_changes(self, service, store):
        service.submit_score("dev-1", "classic", 100, 2)
        service.submit_score("dev-1", "infinity", 40, 3)
        p = store.get("dev-1")
        assert (p.rating_classic, p.rating_infinity, p.achievements_count) == (100, 40, 3)

    def test_idempotent(self, service, store):
        first = service.submit_score("dev-1", "classic", 100, 2)
        second = service.submit_score("dev-1", "classic", 100, 2)
        assert store.count() == 1
        assert first["player"]["username"] == second["player"]["username"]
        assert first["rank"] == second["rank"]

    def test_negative_achievements_clamped(self, service, store):
        service.submit_score("dev-1", "classic", 10, -5)
        assert store.get("dev-1").achievements_count == 0

    def test_bad_mode_rejected_before_store(self, service, store):
        with pytest.raises(BadMode):
            service.submit_score("dev-1", "arcade", 10, 0)
        assert store.count() == 0

    @pytest.mark.parametrize("rating", [1.5, float("nan"), "10", -1])
    def test_bad_rating_rejected_before_store(self, service, store, rating):
        with pytest.raises(InvalidRequest):
            service.submit_score("dev-1", "classic", rating, 0)
        assert store.count() == 0

    def test_rank_reflects_tie_break(self, service):
        service.submit_score("playerA", "classic", 100, 2)
        result = service.submit_score("playerB", "classic", 100, 5)
        assert result["rank"] == 1



class TestColumnRange:
    """Out-of-range numbers are settled before either store sees them."""

    @pytest.fixture
    def any_service(self, any_store):
        registry = make_registry(any_store, offsets=[11111, 22222])
        return LeaderboardService(any_store, registry, RankingEngine(any_store))

    def test_oversized_rating_rejected_before_store(self, any_service, any_store):
        with pytest.raises(InvalidRequest) as exc:
            any_service.submit_score("dev-1", "classic", 2 ** 63, 0)
        assert exc.value.code == "bad_rating"
        assert any_store.count() == 0

    def test_oversized_upsert_rating_rejected(self, any_service, any_store):
        with pytest.raises(InvalidRequest) as exc:
            any_service.register_or_update("dev-1", rating_infinity=MAX_COUNTER + 1)
        assert exc.value.code == "bad_rating"
        assert any_store.count() == 0

    def test_max_rating_is_stored(self, any_service, any_store):
        any_service.submit_score("dev-1", "classic", MAX_COUNTER, 0)
        assert any_store.get("dev-1").rating_classic == MAX_COUNTER

    def test_oversized_achievements_clamped(self, any_service, any_store):
        any_service.submit_score("dev-1", "classic", 10, 2 ** 63)
        assert any_store.get("dev-1").achievements_count == MAX_COUNTER


class TestRegisterOrUpdate:
    def test_new_player_baseline(self, service):
        p = service.register_or_update("dev-1", username="Alice")
        assert (p.rating_classic, p.rating_infinity, p.achievements_count) == (0, 0, 0)

    def test_new_player_without_username_gets_generated(self, service):
        assert service.register_or_update("dev-1").username == "Player21111"

    def test_omitted_fields_preserved(self, service):
        service.register_or_update("dev-1", username="Alice", rating_classic=10,
                                   rating_infinity=20, achievements_count=3)
        p = service.register_or_update("dev-1", rating_classic=50)
        assert p.username == "Alice"
        assert (p.rating_classic, p.rating_infinity, p.achievements_count) == (50, 20, 3)

    def test_rename(self, service):
        service.register_or_update("dev-1", username="Alice")
        assert service.register_or_update("dev-1", username="Alicia").username == "Alicia"

    def test_taken(self, service):
        service.register_or_update("dev-1", username="Alice")
        with pytest.raises(UsernameTaken):
            service.register_or_update("dev-2", username="ALICE")

    def test_bad_format_before_store(self, service, store):
        with pytest.raises(BadFormat):
            service.register_or_update("dev-1", username="x", rating_classic=5)
        assert store.get("dev-1") is None

    def test_missing_device_id(self, service):
        with pytest.raises(InvalidRequest) as exc:
            service.register_or_update("  ")
        assert exc.value.code == "device_id_required"


class TestReadViews:
    def test_get_top_scenario(self, service):
        service.submit_score("playerA", "classic", 100, 2)
        service.submit_score("playerB", "classic", 100, 5)
        items = service.get_top("classic", 2)["items"]
        assert [i["id"] for i in items] == ["playerB", "playerA"]
        assert [i["rank"] for i in items] == [1, 2]

    def test_get_top_limit_clamped(self, service):
        for i in range(3):
            service.submit_score(f"dev-{i}", "classic", i, 0)
        assert len(service.get_top("classic", 0)["items"]) == 1
        assert len(service.get_top("classic", 10**9)["items"]) == 3

    def test_get_top_default_limit(self, service):
        for i in range(12):
            service.register_or_update(f"dev-{i:02d}", username=f"user{i:02d}", rating_classic=i)
        assert len(service.get_top("classic")["items"]) == 10

    def test_get_leaderboard_returns_everyone(self, service):
        for i in range(12):
            service.register_or_update(f"dev-{i:02d}", username=f"user{i:02d}", rating_infinity=i)
        board = service.get_leaderboard("infinity")
        assert board["mode"] == "infinity"
        assert len(board["items"]) == 12
        assert board["items"][0]["id"] == "dev-11"

    def test_get_leaderboard_defaults_to_classic(self, service):
        assert service.get_leaderboard(None)["mode"] == "classic"

    def test_get_me_unknown(self, service):
        assert service.get_me("unknownId", "classic") == {"me": None, "rank": None}

    def test_get_me_known(self, service):
        service.submit_score("playerA", "classic", 100, 2)
        service.submit_score("playerB", "classic", 100, 5)
        me = service.get_me("playerA", "classic")
        assert me["me"]["id"] == "playerA"
        assert me["rank"] == 2

    def test_get_me_bad_mode(self, service):
        with pytest.raises(BadMode):
            service.get_me("playerA", "nope")

    def test_get_around_clipped(self, service):
        for i in range(6):
            service.register_or_update(f"dev-{i}", username=f"user{i}", rating_classic=100 - i)
        result = service.get_around("dev-0", "classic", 2)
        assert [i["rank"] for i in result["items"]] == [1, 2, 3]
        assert result["items"][0]["id"] == "dev-0"

    def test_get_around_radius_clamped(self, service):
        service.register_or_update("dev-0", username="user0")
        assert service.get_around("dev-0", "classic", 10**6)["radius"] == 50

    def test_get_around_unknown(self, service):
        with pytest.raises(PlayerNotFound):
            service.get_around("ghost", "classic", 2)
