"""Validation guards applied before anything touches the store."""
import math

from leaderboard.domain.errors import InvalidRequest

# Ratings and achievement totals live in 32-bit INTEGER columns.
MAX_COUNTER = 2 ** 31 - 1


def validate_player_id(player_id) -> str:
    """Raises if the device id is missing or blank. Returns it stripped."""
    if player_id is None or not str(player_id).strip():
        raise InvalidRequest("device_id_required", "deviceId required")
    return str(player_id).strip()


def validate_rating(rating, field: str = "rating") -> int:
    """Raises unless rating is a finite integer in ``[0, MAX_COUNTER]``."""
    if isinstance(rating, bool):
        raise InvalidRequest("bad_rating", f"{field} must be an integer")
    if isinstance(rating, float):
        if not math.isfinite(rating) or not rating.is_integer():
            raise InvalidRequest("bad_rating", f"{field} must be a finite integer")
        rating = int(rating)
    if not isinstance(rating, int):
        raise InvalidRequest("bad_rating", f"{field} must be an integer")
    if rating < 0:
        raise InvalidRequest("bad_rating", f"{field} cannot be negative")
    if rating > MAX_COUNTER:
        raise InvalidRequest("bad_rating", f"{field} cannot exceed {MAX_COUNTER}")
    return rating


def validate_optional_rating(rating, field: str) -> int | None:
    return None if rating is None else validate_rating(rating, field)


def clamp_achievements(count) -> int:
    """Achievement totals are caller-supplied; out-of-range values are clamped."""
    if isinstance(count, bool) or not isinstance(count, (int, float)):
        raise InvalidRequest("bad_achievements", "achievements must be a number")
    if isinstance(count, float) and not math.isfinite(count):
        raise InvalidRequest("bad_achievements", "achievements must be finite")
    return clamp(int(count), 0, MAX_COUNTER)


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))
