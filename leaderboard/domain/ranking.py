"""Ranking rules -- the single total order behind every ranked view.

A player sorts ahead of another when, for the requested mode, it has:
  1. the higher rating,
  2. then the higher achievements count,
  3. then the earlier ``created_at`` (older registrations win ties),
  4. then the smaller player id.

The last key is unique, so no two distinct players ever compare equal and the
ordering never depends on storage order or sort stability.
"""
from typing import Iterable, List, Optional, Tuple

from leaderboard.domain.enums import GameMode
from leaderboard.domain.player import Player

Ranked = Tuple[int, Player]


def order_key(player: Player, mode: GameMode) -> tuple:
    return (
        -player.rating_for(mode),
        -player.achievements_count,
        player.created_at,
        player.player_id,
    )


def is_ahead(a: Player, b: Player, mode: GameMode) -> bool:
    """True if ``a`` ranks strictly before ``b``."""
    return order_key(a, mode) < order_key(b, mode)


def sort_players(players: Iterable[Player], mode: GameMode) -> List[Player]:
    return sorted(players, key=lambda p: order_key(p, mode))


def with_ranks(ordered: List[Player], start: int = 1) -> List[Ranked]:
    return [(start + i, p) for i, p in enumerate(ordered)]


def position_of(ordered: List[Player], player_id: str) -> Optional[int]:
    """1-based index of ``player_id`` in an already sorted list, or None."""
    for i, p in enumerate(ordered):
        if p.player_id == player_id:
            return i + 1
    return None


def count_ahead(players: Iterable[Player], player: Player, mode: GameMode) -> int:
    """Number of players strictly before ``player``. ``rank == count_ahead + 1``."""
    key = order_key(player, mode)
    return sum(1 for p in players if order_key(p, mode) < key)


def window(ordered: List[Player], rank: int, radius: int) -> List[Ranked]:
    """Players ranked within ``[rank - radius, rank + radius]``, clipped to the list."""
    first = max(1, rank - radius)
    last = min(len(ordered), rank + radius)
    return with_ranks(ordered[first - 1:last], start=first)
