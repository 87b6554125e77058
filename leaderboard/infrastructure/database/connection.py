"""Database engine and session factory.

One ``Database`` instance is created at startup and injected into the SQL
repository; nothing here is module-global. Driver and pool failures are
translated into ``StoreUnavailable`` so callers can tell an outage from a bug.
"""
import logging
import re
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import sessionmaker

from leaderboard.domain.errors import StoreUnavailable

log = logging.getLogger("leaderboard.db")

# Matches a postgres(ql):// URL anywhere inside a string.
_PG_URL_RE = re.compile(r"(postgres(?:ql)?(?:\+\w+)?://\S+)")


def resolve_database_url(raw: str | None) -> str:
    """Return a clean SQLAlchemy URL from a pasted connection string.

    Handles robustly:
    - Leading/trailing whitespace or newlines from copy-paste.
    - Literal surrounding quotes pasted in dashboards.
    - Full ``psql`` command pasted instead of just the URL.
    - ``postgres://`` / ``postgresql://`` schemes, pinned to the psycopg 3 driver.
    """
    raw = (raw or "").strip()

    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in ('"', "'"):
        raw = raw[1:-1].strip()

    match = _PG_URL_RE.search(raw)
    url = match.group(1) if match else raw
    url = url.rstrip("'\"").strip()

    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+psycopg://", 1)
    elif url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def _masked(url: str) -> str:
    if "@" in url:
        return url.split("@")[-1].split("?")[0]
    return url.split("://")[0] + "://<local>" if "://" in url else "<no-host>"


class SessionFactory:
    """Callable passed to repositories.

    Usage (identical to a bare sessionmaker):
        with session_factory() as session:
            ...
    """

    def __init__(self, sessionmaker_):
        self._sm = sessionmaker_

    def __call__(self):
        return self._managed_session()

    @contextmanager
    def _managed_session(self):
        session = self._sm()
        try:
            yield session
        except (OperationalError, PoolTimeoutError) as exc:
            session.rollback()
            log.error("Database unavailable: %s", type(exc).__name__)
            raise StoreUnavailable(f"database unavailable: {type(exc).__name__}") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


class Database:
    """Engine lifecycle: ``open()`` on startup, ``close()`` on shutdown."""

    def __init__(
        self,
        url: str,
        pool_timeout: int = 15,
        statement_timeout_ms: int = 5000,
        **engine_kwargs,
    ):
        self._url = resolve_database_url(url)
        self._pool_timeout = pool_timeout
        self._statement_timeout_ms = statement_timeout_ms
        self._engine_kwargs = engine_kwargs
        self._engine = None
        self._session_factory = None

    @property
    def engine(self):
        return self._engine

    @property
    def session_factory(self) -> SessionFactory:
        if self._session_factory is None:
            raise RuntimeError("Database not opened. Call open() first.")
        return self._session_factory

    def open(self) -> "Database":
        if self._engine is not None:
            return self
        if not self._url:
            raise RuntimeError("DATABASE_URL is empty")
        log.info("Initialising engine -> %s", _masked(self._url))
        self._engine = create_engine(self._url, **self._build_engine_kwargs())
        self._session_factory = SessionFactory(
            sessionmaker(bind=self._engine, expire_on_commit=False)
        )
        self.create_tables()
        return self

    def _build_engine_kwargs(self) -> dict:
        if self._engine_kwargs:
            return dict(self._engine_kwargs)
        kwargs = {"pool_pre_ping": True, "echo": False}
        if self._url.startswith("postgresql"):
            kwargs.update(
                pool_size=5,
                max_overflow=10,
                pool_timeout=self._pool_timeout,
                pool_recycle=1800,
                connect_args={
                    "connect_timeout": self._pool_timeout,
                    "options": f"-c statement_timeout={self._statement_timeout_ms}",
                },
            )
        return kwargs

    def create_tables(self) -> None:
        """Create the schema and its indexes (idempotent)."""
        from leaderboard.infrastructure.database.models import Base

        try:
            Base.metadata.create_all(bind=self._engine)
        except (OperationalError, PoolTimeoutError) as exc:
            raise StoreUnavailable(f"could not create tables: {type(exc).__name__}") from exc
        log.info("Tables verified.")

    def check_health(self) -> bool:
        """Lightweight connectivity check."""
        if self._engine is None:
            return False
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except (OperationalError, PoolTimeoutError):
            return False

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            log.info("Engine disposed.")
        self._engine = None
        self._session_factory = None
