"""PostgreSQL-backed player store."""
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.exc import IntegrityError

from leaderboard.domain.enums import GameMode
from leaderboard.domain.errors import PlayerAlreadyExists, UsernameConflict
from leaderboard.domain.player import Player, as_utc
from leaderboard.domain.username import normalize
from leaderboard.infrastructure.database.models import PlayerModel


def _utcnow():
    return datetime.now(timezone.utc)


def id_precedes(dialect_name: str, player_id: str):
    """``device_id < player_id`` in code-point order, as Python compares strings.

    PostgreSQL compares text with the database collation (e.g. en_US puts
    'a' before 'B'), so the comparison is forced to the C collation there.
    SQLite's default BINARY collation already compares bytes.
    """
    column = PlayerModel.device_id
    if dialect_name == "postgresql":
        column = column.collate("C")
    return column < player_id


class PgPlayerRepository:
    """Player persistence via SQLAlchemy (PostgreSQL in production).

    Username uniqueness is enforced by the unique index on ``lower(username)``;
    an IntegrityError from that index is the conflict signal.
    """

    def __init__(
        self,
        session_factory,
        default_ratings: Optional[Dict[GameMode, int]] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._sf = session_factory
        self._defaults = {mode: 0 for mode in GameMode}
        self._defaults.update(default_ratings or {})
        self._clock = clock

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def upsert(
        self,
        player_id: str,
        username: str | None = None,
        rating_classic: int | None = None,
        rating_infinity: int | None = None,
        achievements_count: int | None = None,
    ) -> Player:
        """Create or update atomically. ``None`` fields keep their stored value."""
        fields = {
            "username": username,
            "rating_classic": rating_classic,
            "rating_infinity": rating_infinity,
            "achievements_count": achievements_count,
        }
        try:
            return self._write(player_id, fields, allow_update=True)
        except IntegrityError as exc:
            self._raise_if_username_taken(player_id, username, exc)
            # Lost a race creating the same device id; the row exists now.
            return self._write(player_id, fields, allow_update=True)

    def insert(
        self,
        player_id: str,
        username: str | None,
        rating_classic: int | None = None,
        rating_infinity: int | None = None,
        achievements_count: int | None = None,
    ) -> Player:
        """Create only. Raises PlayerAlreadyExists or UsernameConflict."""
        fields = {
            "username": username,
            "rating_classic": rating_classic,
            "rating_infinity": rating_infinity,
            "achievements_count": achievements_count,
        }
        try:
            return self._write(player_id, fields, allow_update=False)
        except IntegrityError as exc:
            self._raise_if_username_taken(player_id, username, exc)
            raise PlayerAlreadyExists(player_id) from exc

    def _write(self, player_id: str, fields: dict, allow_update: bool) -> Player:
        with self._sf() as session:
            now = self._clock()
            row = session.get(PlayerModel, player_id, with_for_update=True)
            if row is not None and not allow_update:
                raise PlayerAlreadyExists(player_id)
            if row is None:
                row = PlayerModel(
                    device_id=player_id,
                    username=fields["username"],
                    rating_classic=self._or_default(fields["rating_classic"], GameMode.CLASSIC),
                    rating_infinity=self._or_default(fields["rating_infinity"], GameMode.INFINITY),
                    achievements_count=fields["achievements_count"] or 0,
                    created_at=now,
                    updated_at=now,
                )
                session.add(row)
            else:
                for name, value in fields.items():
                    if value is not None:
                        setattr(row, name, value)
                row.updated_at = max(now, as_utc(row.created_at))
            session.commit()
            return self._to_domain(row)

    def _or_default(self, value: int | None, mode: GameMode) -> int:
        return self._defaults[mode] if value is None else value

    def _raise_if_username_taken(self, player_id: str, username: str | None, exc: Exception) -> None:
        if username is not None and self.username_exists(username, exclude_player_id=player_id):
            raise UsernameConflict(username) from exc

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get(self, player_id: str) -> Optional[Player]:
        with self._sf() as session:
            row = session.get(PlayerModel, player_id)
            return self._to_domain(row) if row else None

    def get_all(self) -> List[Player]:
        with self._sf() as session:
            return [self._to_domain(r) for r in session.query(PlayerModel).all()]

    def username_exists(self, username: str, exclude_player_id: str | None = None) -> bool:
        """Case-insensitive check, optionally ignoring one player's own record."""
        with self._sf() as session:
            query = session.query(PlayerModel.device_id).filter(
                PlayerModel.username.isnot(None),
                func.lower(PlayerModel.username) == normalize(username),
            )
            if exclude_player_id is not None:
                query = query.filter(PlayerModel.device_id != exclude_player_id)
            return query.first() is not None

    def count_ahead(self, player: Player, mode: GameMode) -> int:
        """Players strictly before ``player`` under the canonical tie-break chain."""
        rating = getattr(PlayerModel, mode.rating_field)
        r = player.rating_for(mode)
        a = player.achievements_count
        c = player.created_at
        tiers = (
            rating > r,
            and_(rating == r, PlayerModel.achievements_count > a),
            and_(rating == r, PlayerModel.achievements_count == a, PlayerModel.created_at < c),
        )
        with self._sf() as session:
            ahead = or_(*tiers, and_(
                rating == r,
                PlayerModel.achievements_count == a,
                PlayerModel.created_at == c,
                id_precedes(session.get_bind().dialect.name, player.player_id),
            ))
            return session.query(func.count(PlayerModel.device_id)).filter(ahead).scalar() or 0

    def count(self) -> int:
        with self._sf() as session:
            return session.query(func.count(PlayerModel.device_id)).scalar() or 0

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _to_domain(row: PlayerModel) -> Player:
        return Player(
            player_id=row.device_id,
            username=row.username,
            rating_classic=row.rating_classic,
            rating_infinity=row.rating_infinity,
            achievements_count=row.achievements_count,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
