"""Runtime settings read from environment variables (and ``.env``).

Env vars:
    DATABASE_URL                 PostgreSQL URL; empty -> JSON file store
    DATA_DIR                     directory of the JSON file store
    LEADERBOARD_APP_SECRET       shared secret expected in ``x-app-secret``
    LEADERBOARD_SECRET_FOR_READS "0" lets leaderboard reads through without it
    DEFAULT_RATING_CLASSIC       baseline rating for new players (classic)
    DEFAULT_RATING_INFINITY      baseline rating for new players (infinity)
    USERNAME_PATTERN             regex a username must fully match
    USERNAME_PREFIX              prefix of generated usernames
    USERNAME_SUFFIX_DIGITS       digits appended to generated usernames
    USERNAME_MAX_ATTEMPTS        generation attempts before giving up
    TOP_LIMIT_DEFAULT / TOP_LIMIT_MAX
    AROUND_RADIUS_DEFAULT / AROUND_RADIUS_MAX
    DB_POOL_TIMEOUT              seconds; also used as connect timeout
    DB_STATEMENT_TIMEOUT_MS
    ALLOWED_ORIGINS              comma-separated CORS origins ("*" if empty)
    LOG_LEVEL
"""
import logging
import os

from leaderboard.domain.enums import GameMode
from leaderboard.domain.invariant import MAX_COUNTER
from leaderboard.domain.username import DEFAULT_USERNAME_PATTERN

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_DIR = os.path.dirname(BASE_DIR)

_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip()


def _env_int(
    name: str, default: int, minimum: int | None = None, maximum: int | None = None
) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from None
    if minimum is not None and value < minimum:
        raise RuntimeError(f"{name} must be >= {minimum}, got {value}")
    if maximum is not None and value > maximum:
        raise RuntimeError(f"{name} must be <= {maximum}, got {value}")
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw not in _FALSE_VALUES


class Settings:
    """Immutable bag of deployment settings. Build with ``Settings.from_env()``."""

    def __init__(
        self,
        database_url: str = "",
        data_dir: str = os.path.join(BASE_DIR, "data"),
        app_secret: str = "",
        secret_for_reads: bool = True,
        default_rating_classic: int = 0,
        default_rating_infinity: int = 0,
        username_pattern: str = DEFAULT_USERNAME_PATTERN,
        username_prefix: str = "Player",
        username_suffix_digits: int = 5,
        username_max_attempts: int = 5,
        top_limit_default: int = 10,
        top_limit_max: int = 100000,
        around_radius_default: int = 5,
        around_radius_max: int = 50,
        db_pool_timeout: int = 15,
        db_statement_timeout_ms: int = 5000,
        allowed_origins: tuple = ("*",),
        log_level: str = "INFO",
    ):
        for name, value in (("DEFAULT_RATING_CLASSIC", default_rating_classic),
                            ("DEFAULT_RATING_INFINITY", default_rating_infinity)):
            if not 0 <= value <= MAX_COUNTER:
                raise RuntimeError(f"{name} must be between 0 and {MAX_COUNTER}, got {value}")
        self.database_url = database_url
        self.data_dir = data_dir
        self.app_secret = app_secret
        self.secret_for_reads = secret_for_reads
        self.default_rating_classic = default_rating_classic
        self.default_rating_infinity = default_rating_infinity
        self.username_pattern = username_pattern
        self.username_prefix = username_prefix
        self.username_suffix_digits = username_suffix_digits
        self.username_max_attempts = username_max_attempts
        self.top_limit_default = top_limit_default
        self.top_limit_max = top_limit_max
        self.around_radius_default = around_radius_default
        self.around_radius_max = around_radius_max
        self.db_pool_timeout = db_pool_timeout
        self.db_statement_timeout_ms = db_statement_timeout_ms
        self.allowed_origins = tuple(allowed_origins)
        self.log_level = log_level

    @property
    def default_ratings(self) -> dict:
        return {
            GameMode.CLASSIC: self.default_rating_classic,
            GameMode.INFINITY: self.default_rating_infinity,
        }

    @property
    def persistence(self) -> str:
        return "postgresql" if self.database_url else "json"

    @classmethod
    def from_env(cls) -> "Settings":
        origins = [o.strip() for o in _env_str("ALLOWED_ORIGINS").split(",") if o.strip()]
        return cls(
            database_url=_env_str("DATABASE_URL"),
            data_dir=_env_str("DATA_DIR") or os.path.join(BASE_DIR, "data"),
            app_secret=_env_str("LEADERBOARD_APP_SECRET"),
            secret_for_reads=_env_bool("LEADERBOARD_SECRET_FOR_READS", True),
            default_rating_classic=_env_int("DEFAULT_RATING_CLASSIC", 0, 0, MAX_COUNTER),
            default_rating_infinity=_env_int("DEFAULT_RATING_INFINITY", 0, 0, MAX_COUNTER),
            username_pattern=_env_str("USERNAME_PATTERN") or DEFAULT_USERNAME_PATTERN,
            username_prefix=_env_str("USERNAME_PREFIX") or "Player",
            username_suffix_digits=_env_int("USERNAME_SUFFIX_DIGITS", 5, 1),
            username_max_attempts=_env_int("USERNAME_MAX_ATTEMPTS", 5, 1),
            top_limit_default=_env_int("TOP_LIMIT_DEFAULT", 10),
            top_limit_max=_env_int("TOP_LIMIT_MAX", 100000),
            around_radius_default=_env_int("AROUND_RADIUS_DEFAULT", 5),
            around_radius_max=_env_int("AROUND_RADIUS_MAX", 50),
            db_pool_timeout=_env_int("DB_POOL_TIMEOUT", 15),
            db_statement_timeout_ms=_env_int("DB_STATEMENT_TIMEOUT_MS", 5000),
            allowed_origins=origins or ["*"],
            log_level=_env_str("LOG_LEVEL") or "INFO",
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
