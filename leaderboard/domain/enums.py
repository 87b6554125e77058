"""Enums and value objects used across the domain."""
from enum import Enum

from leaderboard.domain.errors import BadMode


class GameMode(str, Enum):
    CLASSIC = "classic"
    INFINITY = "infinity"

    @property
    def rating_field(self) -> str:
        """Name of the Player attribute holding this mode's rating."""
        return f"rating_{self.value}"

    @staticmethod
    def parse(value: "str | GameMode | None") -> "GameMode":
        """Resolve a wire value. Missing means classic; anything unknown is rejected."""
        if isinstance(value, GameMode):
            return value
        if value is None or not str(value).strip():
            return GameMode.CLASSIC
        try:
            return GameMode(str(value).strip().lower())
        except ValueError:
            raise BadMode(value) from None
