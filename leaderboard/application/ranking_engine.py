"""Ranked views over the player store.

Every query reads the current store contents and sorts them with
``domain.ranking.order_key``; nothing is cached between calls.
"""
from typing import List, Optional, Tuple

from leaderboard.domain import ranking
from leaderboard.domain.enums import GameMode
from leaderboard.domain.errors import PlayerNotFound
from leaderboard.domain.player import Player


class RankingEngine:

    def __init__(self, store):
        self._store = store

    def full_order(self, mode: GameMode) -> List[Player]:
        return ranking.sort_players(self._store.get_all(), mode)

    def rank(self, player_id: str, mode: GameMode) -> Optional[int]:
        """1-based position in ``full_order(mode)``; None for unknown players."""
        return ranking.position_of(self.full_order(mode), player_id)

    def rank_by_count(self, player: Player, mode: GameMode) -> int:
        """Rank via the store's count of players strictly ahead.

        Same value as ``rank`` because the count uses the full tie-break chain.
        """
        return self._store.count_ahead(player, mode) + 1

    def top(self, mode: GameMode, limit: int | None = None) -> List[ranking.Ranked]:
        ordered = self.full_order(mode)
        if limit is not None:
            ordered = ordered[:limit]
        return ranking.with_ranks(ordered)

    def me(self, player_id: str, mode: GameMode) -> Tuple[Optional[Player], Optional[int]]:
        """Player snapshot and rank taken from the same scan."""
        ordered = self.full_order(mode)
        rank = ranking.position_of(ordered, player_id)
        if rank is None:
            return None, None
        return ordered[rank - 1], rank

    def around(self, player_id: str, mode: GameMode, radius: int) -> List[ranking.Ranked]:
        if radius < 0:
            raise ValueError("radius must be >= 0")
        ordered = self.full_order(mode)
        rank = ranking.position_of(ordered, player_id)
        if rank is None:
            raise PlayerNotFound(f"Player not found: {player_id!r}")
        return ranking.window(ordered, rank, radius)
