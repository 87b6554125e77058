"""Player persistence (JSON file + in-memory cache).

Development fallback when no DATABASE_URL is configured. Every operation runs
under one lock, which makes check-and-write on usernames atomic within the
process. Not safe for several processes sharing the same file.
"""
import json
import logging
import os
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from leaderboard.domain.enums import GameMode
from leaderboard.domain.errors import PlayerAlreadyExists, StoreUnavailable, UsernameConflict
from leaderboard.domain.player import Player, as_utc
from leaderboard.domain.ranking import count_ahead
from leaderboard.domain.username import normalize

log = logging.getLogger("leaderboard.store")


def _utcnow():
    return datetime.now(timezone.utc)


class PlayerRepository:
    """JSON-backed player storage. ``data_path=None`` keeps everything in memory."""

    def __init__(
        self,
        data_path: str | None = "data/players.json",
        default_ratings: Optional[Dict[GameMode, int]] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._data_path = data_path
        self._defaults = {mode: 0 for mode in GameMode}
        self._defaults.update(default_ratings or {})
        self._clock = clock
        self._records: Dict[str, dict] = {}
        self._loaded = False
        self._lock = threading.RLock()

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
        with self._lock:
            self._load()
            self._check_username(player_id, username)
            record = self._records.get(player_id)
            if record is None:
                record = self._new_record(player_id, fields)
            else:
                record = dict(record)
                for name, value in fields.items():
                    if value is not None:
                        record[name] = value
                record["updated_at"] = max(self._clock(), as_utc(record["created_at"])).isoformat()
            self._commit(player_id, record)
            return self._to_domain(record, player_id)

    def insert(
        self,
        player_id: str,
        username: str | None,
        rating_classic: int | None = None,
        rating_infinity: int | None = None,
        achievements_count: int | None = None,
    ) -> Player:
        """Create only. Raises PlayerAlreadyExists or UsernameConflict."""
        with self._lock:
            self._load()
            if player_id in self._records:
                raise PlayerAlreadyExists(player_id)
            self._check_username(player_id, username)
            record = self._new_record(player_id, {
                "username": username,
                "rating_classic": rating_classic,
                "rating_infinity": rating_infinity,
                "achievements_count": achievements_count,
            })
            self._commit(player_id, record)
            return self._to_domain(record, player_id)

    def _new_record(self, player_id: str, fields: dict) -> dict:
        now = self._clock().isoformat()
        return {
            "username": fields["username"],
            "rating_classic": self._or_default(fields["rating_classic"], GameMode.CLASSIC),
            "rating_infinity": self._or_default(fields["rating_infinity"], GameMode.INFINITY),
            "achievements_count": fields["achievements_count"] or 0,
            "created_at": now,
            "updated_at": now,
        }

    def _or_default(self, value: int | None, mode: GameMode) -> int:
        return self._defaults[mode] if value is None else value

    def _check_username(self, player_id: str, username: str | None) -> None:
        if username is not None and self._holder_of(username, exclude=player_id):
            raise UsernameConflict(username)

    def _commit(self, player_id: str, record: dict) -> None:
        previous = self._records.get(player_id)
        self._records[player_id] = record
        try:
            self._persist()
        except StoreUnavailable:
            # Keep memory in step with the file.
            if previous is None:
                self._records.pop(player_id, None)
            else:
                self._records[player_id] = previous
            raise

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get(self, player_id: str) -> Optional[Player]:
        with self._lock:
            self._load()
            record = self._records.get(player_id)
            return self._to_domain(record, player_id) if record else None

    def get_all(self) -> List[Player]:
        with self._lock:
            self._load()
            return [self._to_domain(r, pid) for pid, r in self._records.items()]

    def username_exists(self, username: str, exclude_player_id: str | None = None) -> bool:
        with self._lock:
            self._load()
            return self._holder_of(username, exclude=exclude_player_id) is not None

    def count_ahead(self, player: Player, mode: GameMode) -> int:
        return count_ahead(self.get_all(), player, mode)

    def count(self) -> int:
        with self._lock:
            self._load()
            return len(self._records)

    def _holder_of(self, username: str, exclude: str | None = None) -> str | None:
        target = normalize(username)
        for pid, record in self._records.items():
            name = record.get("username")
            if pid != exclude and name is not None and normalize(name) == target:
                return pid
        return None

    # ------------------------------------------------------------------
    # File I/O
    # ------------------------------------------------------------------

    def _persist(self) -> None:
        """Write all records to the JSON file (tempfile + atomic replace)."""
        if self._data_path is None:
            return
        tmp_path = f"{self._data_path}.tmp"
        try:
            directory = os.path.dirname(self._data_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self._records, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self._data_path)
        except OSError as exc:
            log.error("Could not write %s: %s", self._data_path, exc)
            raise StoreUnavailable(f"could not write player file: {exc}") from exc

    def _load(self) -> None:
        """Load records from the JSON file once."""
        if self._loaded:
            return
        if self._data_path is None or not os.path.exists(self._data_path):
            self._loaded = True
            return
        try:
            with open(self._data_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as exc:
            # Refuse to continue: the next write would overwrite every record.
            log.error("Could not read %s: %s", self._data_path, exc)
            raise StoreUnavailable(f"could not read player file: {exc}") from exc
        self._records = {str(pid): record for pid, record in data.items()}
        self._loaded = True

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    def _to_domain(self, record: dict, player_id: str) -> Player:
        return Player(
            player_id=player_id,
            username=record.get("username"),
            rating_classic=record.get("rating_classic", self._defaults[GameMode.CLASSIC]),
            rating_infinity=record.get("rating_infinity", self._defaults[GameMode.INFINITY]),
            achievements_count=record.get("achievements_count", 0),
            created_at=record["created_at"],
            updated_at=record.get("updated_at"),
        )
