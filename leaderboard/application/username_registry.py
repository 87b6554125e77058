"""Use case: username availability and conflict-safe assignment."""
import logging

from leaderboard.domain.errors import (
    CouldNotAssignUsername,
    PlayerAlreadyExists,
    UsernameConflict,
    UsernameTaken,
)
from leaderboard.domain.player import Player
from leaderboard.domain.username import UsernameGenerator, UsernameRule

log = logging.getLogger("leaderboard.usernames")

DEFAULT_MAX_ATTEMPTS = 5


class UsernameRegistry:
    """Case-insensitive username uniqueness on top of a player store.

    The store performs check-and-write as one atomic operation and signals a
    clash with UsernameConflict; this class never checks first and writes later.
    """

    def __init__(
        self,
        store,
        rule: UsernameRule | None = None,
        generator: UsernameGenerator | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._store = store
        self._rule = rule or UsernameRule()
        self._generator = generator or UsernameGenerator()
        self._max_attempts = max_attempts
        for sample in self._generator.extremes():
            if not self._rule.matches(sample):
                raise ValueError(
                    f"Generated usernames like {sample!r} do not match {self._rule.pattern!r}"
                )

    @property
    def rule(self) -> UsernameRule:
        return self._rule

    def check_available(self, name: str | None) -> dict:
        """Format first, then existence. Read-only."""
        if not self._rule.matches(name):
            return {"available": False, "reason": "bad_format"}
        if self._store.username_exists(self._rule.validate(name)):
            return {"available": False, "reason": "taken"}
        return {"available": True}

    def assign(self, player_id: str, requested: str | None = None, **fields) -> Player:
        """Give ``player_id`` a username, writing ``fields`` in the same operation.

        With ``requested``: validated, then reserved atomically (renaming to
        one's own name, in any case, is not a conflict).
        Without: an existing username is kept; otherwise one is generated.
        """
        if requested is not None:
            name = self._rule.validate(requested)
            try:
                player = self._store.upsert(player_id, username=name, **fields)
            except UsernameConflict as exc:
                raise UsernameTaken(f"Username is taken: {name!r}") from exc
            log.info("Username set for %s: %s", player_id, name)
            return player

        existing = self._store.get(player_id)
        if existing is not None and existing.username is not None:
            return self._store.upsert(player_id, **fields) if fields else existing
        return self._assign_generated(player_id, exists=existing is not None, **fields)

    def _assign_generated(self, player_id: str, exists: bool, **fields) -> Player:
        for attempt in range(1, self._max_attempts + 1):
            candidate = self._rule.validate(self._generator.candidate())
            try:
                if exists:
                    player = self._store.upsert(player_id, username=candidate, **fields)
                else:
                    player = self._store.insert(player_id, candidate, **fields)
            except UsernameConflict:
                log.warning(
                    "Generated username %s collided (attempt %d/%d)",
                    candidate, attempt, self._max_attempts,
                )
                continue
            except PlayerAlreadyExists:
                # Created concurrently by another request; keep whatever name it got.
                return self.assign(player_id, None, **fields)
            log.info("Generated username for %s: %s", player_id, candidate)
            return player

        log.error("Could not generate a free username for %s after %d attempts",
                  player_id, self._max_attempts)
        raise CouldNotAssignUsername(
            f"No free username after {self._max_attempts} attempts"
        )
