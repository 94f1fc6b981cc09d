"""
User service - registration, login and profile
"""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.application.sessions import ClientMeta, IssuedTokens, SessionService
from app.auth import get_user_by_email, hash_password, verify_password
from app.domain.errors import conflict, not_found, unauthorized
from app.infrastructure.db.models import User
from app.utils.dates import isoformat, utcnow

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


def public_user(user: User) -> dict:
    """User without the password hash."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "preferences": dict(user.preferences or {}),
        "createdAt": isoformat(user.created_at),
        "updatedAt": isoformat(user.updated_at),
    }


class UserService:
    def __init__(self, db: Session):
        self.db = db
        self.sessions = SessionService(db)

    def register(
        self,
        name: str,
        email: str,
        password: str,
        preferences: Optional[dict] = None,
    ) -> User:
        """
        Зарегистрировать пользователя

        Raises:
            AppError(CONFLICT): email already taken
        """
        if get_user_by_email(self.db, email):
            raise conflict(f"User with email '{email}' already exists")

        now = utcnow()
        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            preferences=preferences or {},
            created_at=now,
            updated_at=now,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # concurrent registration with the same email
            self.db.rollback()
            raise conflict(f"User with email '{email}' already exists")

        logger.info("User %s registered", user.id)
        return user

    def authenticate(self, email: str, password: str) -> User:
        user = get_user_by_email(self.db, email)
        if not user or not verify_password(password, user.password_hash):
            raise unauthorized(INVALID_CREDENTIALS)
        return user

    def login(self, email: str, password: str, meta: Optional[ClientMeta] = None) -> tuple[User, IssuedTokens]:
        user = self.authenticate(email, password)
        tokens = self.sessions.create_session(user, meta)
        return user, tokens

    def refresh_token(self, raw_refresh_token: str, meta: Optional[ClientMeta] = None) -> IssuedTokens:
        return self.sessions.refresh_session(raw_refresh_token, meta)

    def logout(self, session_id: str, user_id: str) -> None:
        self.sessions.revoke_session(session_id, user_id)

    def logout_all(self, user_id: str) -> int:
        return self.sessions.revoke_all_sessions(user_id)

    def get_sessions(self, user_id: str) -> list[dict]:
        return self.sessions.list_active_sessions(user_id)

    def get_profile(self, user_id: str) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise not_found("User", user_id)
        return user

    def update_preferences(self, user_id: str, preferences: dict) -> User:
        """Shallow-merge preferences into the stored ones."""
        user = self.get_profile(user_id)
        # new dict so that SQLAlchemy sees the JSON column as changed
        user.preferences = {**(user.preferences or {}), **(preferences or {})}
        user.updated_at = utcnow()
        self.db.commit()
        return user
