"""FastAPI dependencies for the shared-secret gate (``x-app-secret`` header)."""
import secrets

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader

from leaderboard.domain.errors import Unauthorized

APP_SECRET_HEADER = "x-app-secret"

_security = APIKeyHeader(name=APP_SECRET_HEADER, auto_error=False)


def secret_matches(expected: str | None, got: str | None) -> bool:
    """Constant-time comparison. An unset expected secret admits nobody."""
    if not expected or not got:
        return False
    return secrets.compare_digest(got.encode("utf-8"), expected.encode("utf-8"))


def _reject() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=Unauthorized.code,
    )


def require_app_secret(request: Request, got: str | None = Depends(_security)) -> None:
    """Gate for every mutating route. Raises 401 on a missing or wrong secret."""
    if not secret_matches(request.app.state.settings.app_secret, got):
        raise _reject()


def require_read_secret(request: Request, got: str | None = Depends(_security)) -> None:
    """Gate for read routes; open when LEADERBOARD_SECRET_FOR_READS is off."""
    settings = request.app.state.settings
    if settings.secret_for_reads and not secret_matches(settings.app_secret, got):
        raise _reject()
