"""Error taxonomy. Every error carries a stable reason code for clients."""


class LeaderboardError(Exception):
    """Base class. ``code`` is the stable, user-visible reason."""

    code = "internal"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.code)


# ---------------------------------------------------------------------------
# Validation (raised before any store access)
# ---------------------------------------------------------------------------

class InvalidRequest(LeaderboardError, ValueError):
    code = "bad_request"

    def __init__(self, code: str | None = None, message: str | None = None):
        if code:
            self.code = code
        super().__init__(message or self.code)


class BadFormat(InvalidRequest):
    code = "bad_format"

    def __init__(self, username: str | None = None):
        super().__init__(message=f"Username does not match the allowed format: {username!r}")


class BadMode(InvalidRequest):
    code = "bad_mode"

    def __init__(self, mode=None):
        super().__init__(message=f"Unknown game mode: {mode!r}")


# ---------------------------------------------------------------------------
# Domain outcomes
# ---------------------------------------------------------------------------

class UsernameTaken(LeaderboardError):
    code = "username_taken"


class CouldNotAssignUsername(LeaderboardError):
    code = "could_not_assign_username"


class PlayerNotFound(LeaderboardError):
    code = "player_not_found"


class Unauthorized(LeaderboardError):
    code = "unauthorized"


# ---------------------------------------------------------------------------
# Store signals
# ---------------------------------------------------------------------------

class StoreUnavailable(LeaderboardError):
    """Store timeout or connection failure. Never retried by the core."""

    code = "store_unavailable"


class UsernameConflict(LeaderboardError):
    """Raised by a store when a write would duplicate a username."""

    code = "username_taken"

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"Username already held by another player: {username!r}")


class PlayerAlreadyExists(LeaderboardError):
    """Raised by a conditional insert when the player id is already stored."""

    code = "player_exists"

    def __init__(self, player_id: str):
        self.player_id = player_id
        super().__init__(f"Player already exists: {player_id!r}")
