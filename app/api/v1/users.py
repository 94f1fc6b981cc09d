"""
User & session API endpoints (register, login, refresh, logout)
"""
import re
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.orm import Session

from app.api.deps import CurrentUser, get_client_meta, get_current_user, get_db
from app.api.responses import envelope
from app.application.sessions import ClientMeta
from app.application.users import UserService, public_user
from app.domain.errors import validation_failed


router = APIRouter(prefix="/api/v1/users", tags=["users"])

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


# === Request models ===

class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str
    preferences: dict = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if len(v.strip()) < 2:
            raise ValueError("is required and must be at least 2 characters")
        return v.strip()

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        if not _EMAIL_RE.match(v):
            raise ValueError("must be a valid email address")
        return v.strip()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError("is required and must be at least 6 characters")
        return v


class LoginRequest(BaseModel):
    email: str
    password: str


class RefreshRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")


class LogoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[str] = Field(default=None, alias="sessionId")


class PreferencesRequest(BaseModel):
    preferences: dict


# === Endpoints ===

@router.post("", status_code=201)
def register(req: RegisterRequest, db: Session = Depends(get_db)):
    """Зарегистрировать пользователя"""
    user = UserService(db).register(req.name, req.email, req.password, req.preferences)
    return envelope(public_user(user), message="User registered successfully")


@router.post("/login")
def login(
    req: LoginRequest,
    db: Session = Depends(get_db),
    meta: ClientMeta = Depends(get_client_meta),
):
    """Login: create a session, return access + refresh tokens"""
    user, tokens = UserService(db).login(req.email, req.password, meta)
    return envelope({"user": public_user(user), **tokens.to_dict()}, message="Login successful")


@router.post("/refresh-token")
def refresh_token(
    req: RefreshRequest,
    db: Session = Depends(get_db),
    meta: ClientMeta = Depends(get_client_meta),
):
    """Rotate the refresh token"""
    if not req.refresh_token:
        raise validation_failed("Refresh token is required", ['Field "refreshToken" is required'])

    tokens = UserService(db).refresh_token(req.refresh_token, meta)
    return envelope(tokens.to_dict(), message="Token refreshed successfully")


@router.post("/logout")
def logout(
    req: LogoutRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Logout from one session (defaults to the session of the access token)"""
    session_id = req.session_id or user.session_id
    if not session_id:
        raise validation_failed("Session ID is required", ['Field "sessionId" is required'])

    UserService(db).logout(session_id, user.id)
    return envelope(message="Session revoked successfully")


@router.post("/logout-all")
def logout_all(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    """Logout from all devices"""
    count = UserService(db).logout_all(user.id)
    return envelope(message=f"{count} session(s) revoked successfully")


@router.get("/sessions")
def get_sessions(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    sessions = UserService(db).get_sessions(user.id)
    return envelope(sessions, count=len(sessions))


@router.get("/profile")
def get_profile(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return envelope(public_user(UserService(db).get_profile(user.id)))


@router.patch("/preferences")
def update_preferences(
    req: PreferencesRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updated = UserService(db).update_preferences(user.id, req.preferences)
    return envelope(public_user(updated), message="Preferences updated successfully")
