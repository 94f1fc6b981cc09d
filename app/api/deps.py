"""
FastAPI dependencies (DB session, cache, authentication)
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.application.sessions import ClientMeta, SessionService
from app.auth import decode_access_token
from app.domain.errors import unauthorized
from app.infrastructure.cache import AnalyticsCache
from app.infrastructure.db.session import get_db as _get_db


# Re-export get_db for convenience
get_db = _get_db


@dataclass
class CurrentUser:
    id: str
    email: str
    session_id: Optional[str] = None


def get_cache(request: Request) -> AnalyticsCache:
    """Application-wide analytics cache created in the lifespan."""
    return request.app.state.cache


def get_client_meta(request: Request) -> ClientMeta:
    return ClientMeta(
        user_agent=request.headers.get("user-agent") or "unknown",
        ip_address=request.client.host if request.client else "unknown",
    )


def get_current_user(request: Request, db: Session = Depends(get_db)) -> CurrentUser:
    """
    Resolve the bearer access token and check the session is still alive

    Raises:
        AppError(UNAUTHORIZED): missing/invalid/expired token or revoked session

    Usage:
        @router.get("/profile")
        def get_profile(user: CurrentUser = Depends(get_current_user)):
            ...
    """
    auth_header = request.headers.get("authorization", "")
    if not auth_header.startswith("Bearer "):
        raise unauthorized("Access token is missing. Please provide a Bearer token.")

    token = auth_header.split(" ", 1)[1].strip()
    claims = decode_access_token(token)

    if not SessionService(db).validate_session(claims["id"], claims.get("sid")):
        raise unauthorized("Session has been revoked. Please login again.")

    return CurrentUser(id=claims["id"], email=claims.get("email", ""), session_id=claims.get("sid"))
