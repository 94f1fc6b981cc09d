"""
Session service - issue, rotate and revoke refresh/access token pairs

Жизненный цикл сессии: ACTIVE -> REVOKED или ACTIVE -> EXPIRED.
Refresh-токен выдаётся клиенту один раз; в БД хранится только его хэш.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.auth import create_access_token, generate_refresh_token, hash_token
from app.config import get_settings
from app.domain.errors import unauthorized
from app.domain.session import is_active, parse_duration
from app.infrastructure.db.models import AuthSession, User
from app.utils.dates import isoformat, utcnow

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"

INVALID_REFRESH_TOKEN = "Invalid or expired refresh token. Please login again."
EXPIRED_REFRESH_TOKEN = "Refresh token has expired. Please login again."


@dataclass
class ClientMeta:
    """Client metadata recorded on a session."""
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None


@dataclass
class IssuedTokens:
    """
    Result of login/refresh

    refresh_token is the raw value: it is returned exactly once and cannot
    be recovered afterwards.
    """
    access_token: str
    refresh_token: str
    session: AuthSession

    def to_dict(self) -> dict:
        return {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "session": {
                "id": self.session.id,
                "expiresAt": isoformat(self.session.expires_at),
            },
        }


def session_summary(session: AuthSession) -> dict:
    """Public view of a session (never includes the token hash)."""
    return {
        "id": session.id,
        "userAgent": session.user_agent,
        "ipAddress": session.ip_address,
        "createdAt": isoformat(session.created_at),
        "expiresAt": isoformat(session.expires_at),
    }


class SessionService:
    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    def _new_session(self, user: User, user_agent: str, ip_address: str) -> tuple[AuthSession, str]:
        raw_refresh_token = generate_refresh_token()
        now = utcnow()
        session = AuthSession(
            user_id=user.id,
            refresh_token_hash=hash_token(raw_refresh_token),
            user_agent=user_agent or UNKNOWN,
            ip_address=ip_address or UNKNOWN,
            is_revoked=False,
            expires_at=now + parse_duration(self.settings.REFRESH_TOKEN_EXPIRES_IN),
            created_at=now,
            updated_at=now,
        )
        self.db.add(session)
        self.db.flush()  # assigns session.id
        return session, raw_refresh_token

    def _issue(self, user: User, session: AuthSession, raw_refresh_token: str) -> IssuedTokens:
        access_token = create_access_token(user.id, user.email, session_id=session.id)
        return IssuedTokens(access_token=access_token, refresh_token=raw_refresh_token, session=session)

    def create_session(self, user: User, meta: Optional[ClientMeta] = None) -> IssuedTokens:
        """
        Создать сессию после успешного логина

        Args:
            user: authenticated user
            meta: user agent / IP of the client

        Returns:
            IssuedTokens with access token, raw refresh token and the session
        """
        meta = meta or ClientMeta()
        session, raw_refresh_token = self._new_session(user, meta.user_agent, meta.ip_address)
        self.db.commit()

        logger.info("Session %s created for user %s", session.id, user.id)
        return self._issue(user, session, raw_refresh_token)

    def refresh_session(self, raw_refresh_token: str, meta: Optional[ClientMeta] = None) -> IssuedTokens:
        """
        Rotate a refresh token

        The presented session is revoked and a brand-new session is minted in
        the same DB transaction. Reusing the old token afterwards always fails.

        Raises:
            AppError(UNAUTHORIZED): unknown, revoked, expired or already rotated token
        """
        meta = meta or ClientMeta()
        token_hash = hash_token(raw_refresh_token)

        session = self.db.query(AuthSession).filter(
            AuthSession.refresh_token_hash == token_hash,
            AuthSession.is_revoked.is_(False),
        ).first()

        if not session:
            raise unauthorized(INVALID_REFRESH_TOKEN)

        now = utcnow()
        if session.expires_at <= now:
            # expired but never revoked: revoke lazily on first reuse
            session.is_revoked = True
            session.updated_at = now
            self.db.commit()
            logger.info("Session %s expired, revoked on refresh attempt", session.id)
            raise unauthorized(EXPIRED_REFRESH_TOKEN)

        user = self.db.query(User).filter(User.id == session.user_id).first()
        if not user:
            session.is_revoked = True
            self.db.commit()
            raise unauthorized("User not found. Session invalid.")

        # Conditional update: only one concurrent rotation can flip the flag
        result = self.db.execute(
            update(AuthSession)
            .where(AuthSession.id == session.id, AuthSession.is_revoked.is_(False))
            .values(is_revoked=True, updated_at=now)
        )
        if result.rowcount != 1:
            self.db.rollback()
            raise unauthorized(INVALID_REFRESH_TOKEN)

        new_session, new_raw_token = self._new_session(
            user,
            meta.user_agent or session.user_agent,
            meta.ip_address or session.ip_address,
        )
        self.db.commit()

        logger.info("Session %s rotated to %s for user %s", session.id, new_session.id, user.id)
        return self._issue(user, new_session, new_raw_token)

    def revoke_session(self, session_id: str, user_id: str) -> None:
        """
        Logout: revoke one session of the requesting user

        Unknown and foreign sessions are both reported as UNAUTHORIZED so that
        session ids of other users cannot be discovered. Revoking twice is fine.
        """
        session = self.db.query(AuthSession).filter(AuthSession.id == session_id).first()
        if not session or session.user_id != user_id:
            raise unauthorized("Session not found.")

        session.is_revoked = True
        session.updated_at = utcnow()
        self.db.commit()
        logger.info("Session %s revoked by user %s", session_id, user_id)

    def _active_query(self, user_id: str):
        return self.db.query(AuthSession).filter(
            AuthSession.user_id == user_id,
            AuthSession.is_revoked.is_(False),
            AuthSession.expires_at > utcnow(),
        )

    def revoke_all_sessions(self, user_id: str) -> int:
        """Logout everywhere: revoke every active session, return the count."""
        sessions = self._active_query(user_id).all()
        now = utcnow()
        for session in sessions:
            session.is_revoked = True
            session.updated_at = now
        self.db.commit()

        logger.info("Revoked %d session(s) of user %s", len(sessions), user_id)
        return len(sessions)

    def list_active_sessions(self, user_id: str) -> List[dict]:
        sessions = self._active_query(user_id).order_by(AuthSession.created_at).all()
        return [session_summary(s) for s in sessions]

    def validate_session(self, user_id: str, session_id: Optional[str] = None) -> bool:
        """
        Authentication gate check

        By default true iff the user has at least one active session. With
        STRICT_SESSION_BINDING and a session id from the token, that exact
        session must be active.
        """
        if session_id and self.settings.STRICT_SESSION_BINDING:
            session = self.db.query(AuthSession).filter(AuthSession.id == session_id).first()
            return (
                session is not None
                and session.user_id == user_id
                and is_active(session.is_revoked, session.expires_at, utcnow())
            )
        return self._active_query(user_id).first() is not None
