"""Use cases behind the HTTP surface: register, submit, rank queries."""
import logging

from leaderboard.application.ranking_engine import RankingEngine
from leaderboard.application.username_registry import UsernameRegistry
from leaderboard.domain.enums import GameMode
from leaderboard.domain.invariant import (
    clamp,
    clamp_achievements,
    validate_optional_rating,
    validate_player_id,
    validate_rating,
)
from leaderboard.domain.player import Player

log = logging.getLogger("leaderboard.service")


def _items(ranked) -> list:
    return [{**p.to_dict(), "rank": rank} for rank, p in ranked]


class LeaderboardService:
    """
    Orchestrates the registry and the ranking engine.
    All input validation happens here, before the store is touched.
    """

    def __init__(
        self,
        store,
        registry: UsernameRegistry,
        engine: RankingEngine | None = None,
        top_limit_default: int = 10,
        top_limit_max: int = 100000,
        around_radius_default: int = 5,
        around_radius_max: int = 50,
    ):
        self._store = store
        self._registry = registry
        self._engine = engine or RankingEngine(store)
        self._top_limit_default = top_limit_default
        self._top_limit_max = top_limit_max
        self._around_radius_default = around_radius_default
        self._around_radius_max = around_radius_max

    # ------------------------------------------------------------------
    # Usernames
    # ------------------------------------------------------------------

    def check_username(self, name: str | None) -> dict:
        return self._registry.check_available(name)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def register_or_update(
        self,
        player_id,
        username: str | None = None,
        rating_classic=None,
        rating_infinity=None,
        achievements_count=None,
    ) -> Player:
        """General upsert. Omitted fields are left unchanged on existing players."""
        player_id = validate_player_id(player_id)
        fields = {
            "rating_classic": validate_optional_rating(rating_classic, "ratingClassic"),
            "rating_infinity": validate_optional_rating(rating_infinity, "ratingInfinity"),
            "achievements_count": (
                None if achievements_count is None else clamp_achievements(achievements_count)
            ),
        }
        if username is not None:
            username = self._registry.rule.validate(username)
        fields = {k: v for k, v in fields.items() if v is not None}

        if username is None and self._store.get(player_id) is not None:
            return self._store.upsert(player_id, **fields)
        return self._registry.assign(player_id, username, **fields)

    def submit_score(self, player_id, mode, rating, achievements_total) -> dict:
        """Record the latest rating for one mode. Creates the player if needed."""
        player_id = validate_player_id(player_id)
        mode = GameMode.parse(mode)
        rating = validate_rating(rating)
        achievements = clamp_achievements(achievements_total)

        fields = {mode.rating_field: rating, "achievements_count": achievements}
        if self._store.get(player_id) is None:
            player = self._registry.assign(player_id, None, **fields)
            log.info("New player %s created by score submission", player_id)
        else:
            player = self._store.upsert(player_id, **fields)
        return {
            "player": player.to_dict(),
            "mode": mode.value,
            "rank": self._engine.rank_by_count(player, mode),
        }

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_leaderboard(self, mode=None) -> dict:
        mode = GameMode.parse(mode)
        return {"mode": mode.value, "items": _items(self._engine.top(mode))}

    def get_top(self, mode=None, limit: int | None = None) -> dict:
        mode = GameMode.parse(mode)
        limit = self._top_limit_default if limit is None else limit
        limit = clamp(int(limit), 1, self._top_limit_max)
        return {"mode": mode.value, "items": _items(self._engine.top(mode, limit))}

    def get_me(self, player_id, mode=None) -> dict:
        player_id = validate_player_id(player_id)
        mode = GameMode.parse(mode)
        me, rank = self._engine.me(player_id, mode)
        return {"me": me.to_dict() if me else None, "rank": rank}

    def get_around(self, player_id, mode=None, radius: int | None = None) -> dict:
        player_id = validate_player_id(player_id)
        mode = GameMode.parse(mode)
        radius = self._around_radius_default if radius is None else radius
        radius = clamp(int(radius), 0, self._around_radius_max)
        ranked = self._engine.around(player_id, mode, radius)
        return {"mode": mode.value, "radius": radius, "items": _items(ranked)}
