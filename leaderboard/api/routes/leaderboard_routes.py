"""Leaderboard API routes -- usernames, upsert, scores, ranked views."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, ConfigDict, Field

from leaderboard.application.leaderboard_service import LeaderboardService
from leaderboard.domain.errors import (
    CouldNotAssignUsername,
    InvalidRequest,
    LeaderboardError,
    PlayerNotFound,
    StoreUnavailable,
    Unauthorized,
    UsernameTaken,
)
from leaderboard.infrastructure.auth.app_secret import require_app_secret, require_read_secret

log = logging.getLogger("leaderboard.api")

router = APIRouter(prefix="/api", tags=["leaderboard"])


class UpsertRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    device_id: Optional[str] = Field(None, alias="deviceId", max_length=128)
    username: Optional[str] = None
    rating_classic: Optional[int] = Field(None, alias="ratingClassic")
    rating_infinity: Optional[int] = Field(None, alias="ratingInfinity")
    achievements_count: Optional[int] = Field(None, alias="achievementsCount")


class SubmitScoreRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    device_id: Optional[str] = Field(None, alias="deviceId", max_length=128)
    mode: Optional[str] = None
    rating: int
    achievements_total: int = Field(0, alias="achievementsTotal")


def get_service(request: Request) -> LeaderboardService:
    return request.app.state.leaderboard


# ---------------------------------------------------------------------------
# Helper: error translation
# ---------------------------------------------------------------------------

_STATUS_BY_ERROR = (
    (InvalidRequest, 400),
    (Unauthorized, 401),
    (PlayerNotFound, 404),
    (UsernameTaken, 409),
    (CouldNotAssignUsername, 409),
    (StoreUnavailable, 503),
)


def _http_error(exc: LeaderboardError) -> HTTPException:
    """Map a domain error to its HTTP status; the body carries only the reason code."""
    for kind, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, kind):
            return HTTPException(status_code=status_code, detail=exc.code)
    log.error("Unmapped domain error %s: %s", type(exc).__name__, exc)
    return HTTPException(status_code=500, detail="internal")


# ---------------------------------------------------------------------------
# Usernames
# ---------------------------------------------------------------------------

@router.get("/check-username", dependencies=[Depends(require_read_secret)])
def api_check_username(
    username: str = "",
    service: LeaderboardService = Depends(get_service),
):
    """Is this username well-formed and free?"""
    try:
        result = service.check_username(username)
    except LeaderboardError as e:
        raise _http_error(e)
    return {"ok": result["available"], **result}


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

@router.post("/upsert", dependencies=[Depends(require_app_secret)])
def api_upsert(req: UpsertRequest, service: LeaderboardService = Depends(get_service)):
    """Create or update a player; omitted fields are left as they are."""
    try:
        player = service.register_or_update(
            req.device_id,
            username=req.username,
            rating_classic=req.rating_classic,
            rating_infinity=req.rating_infinity,
            achievements_count=req.achievements_count,
        )
    except LeaderboardError as e:
        raise _http_error(e)
    return player.to_dict()


@router.post("/score", dependencies=[Depends(require_app_secret)])
def api_submit_score(req: SubmitScoreRequest, service: LeaderboardService = Depends(get_service)):
    """Submit the latest rating for one mode."""
    try:
        return service.submit_score(req.device_id, req.mode, req.rating, req.achievements_total)
    except LeaderboardError as e:
        raise _http_error(e)


# ---------------------------------------------------------------------------
# Ranked views
# ---------------------------------------------------------------------------

@router.get("/leaderboard", dependencies=[Depends(require_read_secret)])
def api_get_leaderboard(
    mode: Optional[str] = None,
    service: LeaderboardService = Depends(get_service),
):
    """The whole ranking for a mode."""
    try:
        return service.get_leaderboard(mode)
    except LeaderboardError as e:
        raise _http_error(e)


@router.get("/top", dependencies=[Depends(require_read_secret)])
def api_get_top(
    mode: Optional[str] = None,
    limit: Optional[int] = None,
    service: LeaderboardService = Depends(get_service),
):
    try:
        return service.get_top(mode, limit)
    except LeaderboardError as e:
        raise _http_error(e)


@router.get("/me", dependencies=[Depends(require_read_secret)])
def api_get_me(
    device_id: Optional[str] = None,
    mode: Optional[str] = None,
    service: LeaderboardService = Depends(get_service),
):
    """My card plus my rank; ``{me: null, rank: null}`` for unknown devices."""
    try:
        return service.get_me(device_id, mode)
    except LeaderboardError as e:
        raise _http_error(e)


@router.get("/around", dependencies=[Depends(require_read_secret)])
def api_get_around(
    device_id: Optional[str] = None,
    mode: Optional[str] = None,
    radius: Optional[int] = Query(None, ge=0),
    service: LeaderboardService = Depends(get_service),
):
    """Players ranked within ``radius`` places of this device."""
    try:
        return service.get_around(device_id, mode, radius)
    except LeaderboardError as e:
        raise _http_error(e)
