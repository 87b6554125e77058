"""Entry point. Builds the store, wires services into routes.

Persistence strategy:
  - If DATABASE_URL is set  -> PostgreSQL via SQLAlchemy.
  - Otherwise               -> JSON file fallback (development only).
"""
import logging
import os
import random
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv

from leaderboard.config import PROJECT_DIR, Settings, configure_logging

load_dotenv(os.path.join(PROJECT_DIR, ".env"))

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from leaderboard.api.routes.leaderboard_routes import router as leaderboard_router
from leaderboard.application.leaderboard_service import LeaderboardService
from leaderboard.application.ranking_engine import RankingEngine
from leaderboard.application.username_registry import UsernameRegistry
from leaderboard.domain.username import UsernameGenerator, UsernameRule

log = logging.getLogger("leaderboard.startup")
access_log = logging.getLogger("leaderboard.http")


class RequestLogMiddleware(BaseHTTPMiddleware):
    """One line per request: method, path, status, duration."""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        access_log.info(
            "%s %s %d %.1fms",
            request.method, request.url.path, response.status_code, elapsed_ms,
        )
        return response


def build_service(settings: Settings, store, rng: random.Random | None = None) -> LeaderboardService:
    registry = UsernameRegistry(
        store,
        rule=UsernameRule(settings.username_pattern),
        generator=UsernameGenerator(
            prefix=settings.username_prefix,
            digits=settings.username_suffix_digits,
            rng=rng,
        ),
        max_attempts=settings.username_max_attempts,
    )
    return LeaderboardService(
        store,
        registry,
        RankingEngine(store),
        top_limit_default=settings.top_limit_default,
        top_limit_max=settings.top_limit_max,
        around_radius_default=settings.around_radius_default,
        around_radius_max=settings.around_radius_max,
    )


def _open_store(settings: Settings):
    """Return ``(store, database)``; database is None for the JSON fallback."""
    if settings.database_url:
        from leaderboard.infrastructure.database.connection import Database
        from leaderboard.infrastructure.repositories.pg_player_repository import PgPlayerRepository

        database = Database(
            settings.database_url,
            pool_timeout=settings.db_pool_timeout,
            statement_timeout_ms=settings.db_statement_timeout_ms,
        ).open()
        store = PgPlayerRepository(database.session_factory, default_ratings=settings.default_ratings)
        return store, database

    from leaderboard.infrastructure.repositories.player_repository import PlayerRepository

    store = PlayerRepository(
        data_path=os.path.join(settings.data_dir, "players.json"),
        default_ratings=settings.default_ratings,
    )
    return store, None


def create_app(settings: Settings | None = None, store=None, rng: random.Random | None = None) -> FastAPI:
    """Build the app. ``store`` may be injected (tests); otherwise it is opened on startup."""
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database = None
        active_store = store
        if active_store is None:
            active_store, database = _open_store(settings)
        app.state.store = active_store
        app.state.database = database
        app.state.leaderboard = build_service(settings, active_store, rng=rng)
        print(f"[LEADERBOARD] Persistence: {settings.persistence}")
        if not settings.app_secret:
            log.warning("LEADERBOARD_APP_SECRET is not set; every gated request will be rejected.")
        try:
            yield
        finally:
            if database is not None:
                database.close()
            print("[LEADERBOARD] Shutdown complete.")

    app = FastAPI(
        title="Leaderboard",
        description="Per-player ratings and rankings for the classic and infinity modes.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestLogMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(leaderboard_router)

    @app.exception_handler(Exception)
    async def internal_error(request: Request, exc: Exception):
        logging.getLogger("leaderboard.api").exception(
            "Unhandled error on %s %s", request.method, request.url.path,
        )
        return JSONResponse(status_code=500, content={"detail": "internal"})

    @app.get("/health")
    def health(request: Request):
        result = {
            "status": "online",
            "system": "Leaderboard v1.0.0",
            "persistence": settings.persistence,
        }
        database = getattr(request.app.state, "database", None)
        if database is not None:
            result["database"] = "connected" if database.check_health() else "disconnected"
        try:
            result["players"] = request.app.state.store.count()
        except Exception as exc:
            result["players"] = f"ERROR: {type(exc).__name__}"
        return result

    return app


_settings = Settings.from_env()
configure_logging(_settings.log_level)
app = create_app(_settings)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "leaderboard.main:app",
        host="0.0.0.0",
        port=int(os.environ.get("PORT", "3000")),
        reload=True,
    )
