"""
Shared pytest fixtures for the leaderboard test suite.

Strategy:
- Domain tests: pure in-memory, zero I/O.
- Store tests: the JSON repository in memory / in tmp_path, and the SQL
  repository on an in-memory SQLite database.
- API tests: FastAPI TestClient over an injected in-memory store.
  DATABASE_URL is cleared so nothing ever reaches a real database.
"""
import os
import random
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.pool import StaticPool

# ---------------------------------------------------------------------------
# Ensure no real database is touched during the test run
# ---------------------------------------------------------------------------
os.environ.pop("DATABASE_URL", None)

TEST_SECRET = "test-app-secret"

from leaderboard.application.leaderboard_service import LeaderboardService
from leaderboard.application.ranking_engine import RankingEngine
from leaderboard.application.username_registry import UsernameRegistry
from leaderboard.config import Settings
from leaderboard.domain.player import Player
from leaderboard.domain.username import UsernameGenerator, UsernameRule
from leaderboard.infrastructure.database.connection import Database
from leaderboard.infrastructure.repositories.pg_player_repository import PgPlayerRepository
from leaderboard.infrastructure.repositories.player_repository import PlayerRepository


T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Domain helpers (reusable across many test modules)
# ---------------------------------------------------------------------------

def make_player(player_id="p1", username=None, classic=0, infinity=0,
                achievements=0, created=0, **kwargs) -> Player:
    """Player created ``created`` seconds after T0."""
    return Player(
        player_id=player_id,
        username=username,
        rating_classic=classic,
        rating_infinity=infinity,
        achievements_count=achievements,
        created_at=T0 + timedelta(seconds=created),
        **kwargs,
    )


class StepClock:
    """Deterministic clock: every call is one second after the previous one."""

    def __init__(self, start=T0):
        self._now = start

    def __call__(self):
        now = self._now
        self._now += timedelta(seconds=1)
        return now


class SequenceRandom(random.Random):
    """randrange() yields the given offsets in order, repeating the last one."""

    def __init__(self, offsets):
        super().__init__(0)
        self._offsets = list(offsets)

    def randrange(self, start, stop=None, step=1):
        value = self._offsets.pop(0) if len(self._offsets) > 1 else self._offsets[0]
        return start + value


def make_registry(store, offsets=(0,), max_attempts=5, prefix="Player", digits=5):
    return UsernameRegistry(
        store,
        rule=UsernameRule(),
        generator=UsernameGenerator(prefix=prefix, digits=digits, rng=SequenceRandom(offsets)),
        max_attempts=max_attempts,
    )


def make_sqlite_database() -> Database:
    return Database(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    ).open()


# ---------------------------------------------------------------------------
# pytest fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def store(clock):
    """In-memory JSON repository."""
    return PlayerRepository(data_path=None, clock=clock)


@pytest.fixture
def sqlite_db():
    db = make_sqlite_database()
    yield db
    db.close()


@pytest.fixture
def sql_store(sqlite_db, clock):
    return PgPlayerRepository(sqlite_db.session_factory, clock=clock)


@pytest.fixture(params=["json", "sql"])
def any_store(request, clock):
    """Both store implementations behind the same contract."""
    if request.param == "json":
        yield PlayerRepository(data_path=None, clock=clock)
        return
    db = make_sqlite_database()
    yield PgPlayerRepository(db.session_factory, clock=clock)
    db.close()


@pytest.fixture
def registry(store):
    return make_registry(store, offsets=[11111, 22222, 33333])


@pytest.fixture
def engine(store):
    return RankingEngine(store)


@pytest.fixture
def service(store, registry):
    return LeaderboardService(store, registry, RankingEngine(store))


# ---------------------------------------------------------------------------
# FastAPI TestClient with an in-memory store
# ---------------------------------------------------------------------------

@pytest.fixture
def settings():
    return Settings(app_secret=TEST_SECRET, top_limit_max=50, around_radius_max=10)


@pytest.fixture
def api_store(clock):
    return PlayerRepository(data_path=None, clock=clock)


@pytest.fixture
def client(settings, api_store):
    from fastapi.testclient import TestClient
    from leaderboard.main import create_app

    app = create_app(settings, store=api_store, rng=SequenceRandom([40000, 50000, 60000]))
    with TestClient(app) as c:
        yield c


@pytest.fixture
def secret_headers():
    return {"x-app-secret": TEST_SECRET}
