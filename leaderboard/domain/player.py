"""Player entity -- one record per device, ratings per game mode."""
from datetime import datetime, timezone

from leaderboard.domain.enums import GameMode

DISPLAY_NAME_FALLBACK = "Player"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: "datetime | str | None") -> datetime | None:
    """Normalise stored timestamps (ISO strings, naive or aware) to aware UTC."""
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Player:
    """
    Read-only snapshot of a stored player.
    Stores build a fresh instance for every read; nothing mutates it afterwards.
    """

    def __init__(
        self,
        player_id: str,
        username: str | None = None,
        rating_classic: int = 0,
        rating_infinity: int = 0,
        achievements_count: int = 0,
        created_at: "datetime | str | None" = None,
        updated_at: "datetime | str | None" = None,
    ):
        if not player_id or not str(player_id).strip():
            raise ValueError("Player id cannot be empty")
        if rating_classic < 0 or rating_infinity < 0 or achievements_count < 0:
            raise ValueError("Ratings and achievements cannot be negative")
        self._player_id = str(player_id)
        self._username = username
        self._rating_classic = int(rating_classic)
        self._rating_infinity = int(rating_infinity)
        self._achievements_count = int(achievements_count)
        self._created_at = as_utc(created_at) or _utcnow()
        self._updated_at = as_utc(updated_at) or self._created_at
        if self._updated_at < self._created_at:
            raise ValueError("updated_at cannot precede created_at")

    @property
    def player_id(self) -> str:
        return self._player_id

    @property
    def username(self) -> str | None:
        return self._username

    @property
    def display_name(self) -> str:
        return self._username or DISPLAY_NAME_FALLBACK

    @property
    def rating_classic(self) -> int:
        return self._rating_classic

    @property
    def rating_infinity(self) -> int:
        return self._rating_infinity

    @property
    def achievements_count(self) -> int:
        return self._achievements_count

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def updated_at(self) -> datetime:
        return self._updated_at

    def rating_for(self, mode: GameMode) -> int:
        return getattr(self, mode.rating_field)

    def to_dict(self) -> dict:
        """Wire representation returned by every endpoint."""
        return {
            "id": self._player_id,
            "username": self.display_name,
            "ratingClassic": self._rating_classic,
            "ratingInfinity": self._rating_infinity,
            "achievementsCount": self._achievements_count,
            "updatedAt": self._updated_at.isoformat(),
        }

    def __eq__(self, other) -> bool:
        if not isinstance(other, Player):
            return NotImplemented
        return self._player_id == other._player_id and self.to_dict() == other.to_dict()

    def __hash__(self) -> int:
        return hash(self._player_id)

    def __repr__(self) -> str:
        return f"Player({self._player_id!r}, username={self._username!r})"
