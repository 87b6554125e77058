"""SQLAlchemy ORM models -- PostgreSQL schema definition."""
from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, DateTime, Index, func
from sqlalchemy.orm import DeclarativeBase


def _utcnow():
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# Players (one row per device)
# ---------------------------------------------------------------------------

class PlayerModel(Base):
    __tablename__ = "players"

    device_id = Column(String(128), primary_key=True)
    # Uniqueness is case-insensitive; see idx_players_username_lower below.
    username = Column(String(64), nullable=True)
    rating_classic = Column(Integer, nullable=False, default=0)
    rating_infinity = Column(Integer, nullable=False, default=0)
    achievements_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)


# Only non-null usernames take part in the constraint.
Index(
    "idx_players_username_lower",
    func.lower(PlayerModel.username),
    unique=True,
    postgresql_where=PlayerModel.username.isnot(None),
    sqlite_where=PlayerModel.username.isnot(None),
)

# Ranked scans follow the canonical order for each mode.
Index(
    "idx_players_rank_classic",
    PlayerModel.rating_classic.desc(),
    PlayerModel.achievements_count.desc(),
    PlayerModel.created_at,
)
Index(
    "idx_players_rank_infinity",
    PlayerModel.rating_infinity.desc(),
    PlayerModel.achievements_count.desc(),
    PlayerModel.created_at,
)
