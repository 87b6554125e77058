"""Username format rule and generated-name scheme."""
import random
import re

from leaderboard.domain.errors import BadFormat

DEFAULT_USERNAME_PATTERN = r"^[A-Za-z0-9_. ]{3,16}$"


class UsernameRule:
    """Charset/length rule. The pattern is deployment configuration."""

    def __init__(self, pattern: str = DEFAULT_USERNAME_PATTERN):
        self._regex = re.compile(pattern)

    @property
    def pattern(self) -> str:
        return self._regex.pattern

    def matches(self, name: str | None) -> bool:
        if name is None:
            return False
        return self._regex.fullmatch(str(name).strip()) is not None

    def validate(self, name: str | None) -> str:
        """Return the stripped name or raise BadFormat."""
        if not self.matches(name):
            raise BadFormat(name)
        return str(name).strip()


def normalize(name: str) -> str:
    """Comparison form used for case-insensitive uniqueness."""
    return name.strip().lower()


class UsernameGenerator:
    """Produces ``<prefix><digits>`` candidates, e.g. ``Player48213``."""

    def __init__(self, prefix: str = "Player", digits: int = 5, rng: random.Random | None = None):
        if digits < 1:
            raise ValueError("digits must be >= 1")
        self._prefix = prefix
        self._digits = digits
        self._rng = rng or random.SystemRandom()

    def candidate(self) -> str:
        low = 10 ** (self._digits - 1)
        return f"{self._prefix}{self._rng.randrange(low, low * 10)}"

    def extremes(self) -> tuple:
        """Smallest and largest possible candidates, without drawing from the rng."""
        low = 10 ** (self._digits - 1)
        return f"{self._prefix}{low}", f"{self._prefix}{low * 10 - 1}"
