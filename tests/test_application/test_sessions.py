"""
Tests for SessionService and access tokens
"""
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt
from sqlalchemy.sql.dml import Update

from app.application.sessions import (
    EXPIRED_REFRESH_TOKEN, INVALID_REFRESH_TOKEN, ClientMeta, SessionService,
)
from app.auth import (
    ACCESS_TOKEN_EXPIRED, ACCESS_TOKEN_INVALID, create_access_token, decode_access_token, hash_token,
)
from app.config import get_settings
from app.domain.errors import AppError, ErrorKind
from app.infrastructure.db.models import AuthSession
from app.utils.dates import utcnow


@pytest.fixture
def service(db_session):
    return SessionService(db_session)


# ---------------------------------------------------------------------------
# create_session
# ---------------------------------------------------------------------------

def test_create_session_stores_only_hash(service, db_session, user):
    """В БД хранится только хэш refresh-токена"""
    tokens = service.create_session(user, ClientMeta(user_agent="pytest", ip_address="10.0.0.1"))

    stored = db_session.query(AuthSession).filter(AuthSession.id == tokens.session.id).one()
    assert stored.refresh_token_hash == hash_token(tokens.refresh_token)
    assert stored.refresh_token_hash != tokens.refresh_token
    assert len(tokens.refresh_token) == 80
    assert stored.user_agent == "pytest"
    assert stored.ip_address == "10.0.0.1"
    assert stored.is_revoked is False


def test_create_session_defaults_unknown_meta(service, user):
    tokens = service.create_session(user)
    assert tokens.session.user_agent == "unknown"
    assert tokens.session.ip_address == "unknown"


def test_create_session_expiry_from_settings(service, user):
    before = utcnow()
    tokens = service.create_session(user)
    delta = tokens.session.expires_at - before
    assert timedelta(days=7) - timedelta(seconds=5) < delta <= timedelta(days=7) + timedelta(seconds=5)


def test_access_token_claims(service, user):
    tokens = service.create_session(user)
    claims = decode_access_token(tokens.access_token)
    assert claims["id"] == user.id
    assert claims["email"] == user.email
    assert claims["sid"] == tokens.session.id
    assert claims["exp"] - claims["iat"] == 15 * 60


def test_issued_tokens_to_dict(service, user):
    data = service.create_session(user).to_dict()
    assert set(data) == {"accessToken", "refreshToken", "session"}
    assert set(data["session"]) == {"id", "expiresAt"}


# ---------------------------------------------------------------------------
# refresh_session
# ---------------------------------------------------------------------------

def test_refresh_rotates_session(service, db_session, user):
    """Ротация: старая сессия отозвана, выдана новая пара токенов"""
    first = service.create_session(user, ClientMeta(user_agent="ua-1", ip_address="1.1.1.1"))

    second = service.refresh_session(first.refresh_token)

    assert second.session.id != first.session.id
    assert second.refresh_token != first.refresh_token
    old = db_session.query(AuthSession).filter(AuthSession.id == first.session.id).one()
    db_session.refresh(old)
    assert old.is_revoked is True
    # metadata inherited when the refresh request carries none
    assert second.session.user_agent == "ua-1"
    assert second.session.ip_address == "1.1.1.1"


def test_refresh_reuse_of_rotated_token_fails(service, user):
    first = service.create_session(user)
    service.refresh_session(first.refresh_token)

    with pytest.raises(AppError) as exc:
        service.refresh_session(first.refresh_token)
    assert exc.value.kind == ErrorKind.UNAUTHORIZED
    assert exc.value.message == INVALID_REFRESH_TOKEN


def test_refresh_chain_keeps_single_active_session(service, user):
    tokens = service.create_session(user)
    for _ in range(3):
        tokens = service.refresh_session(tokens.refresh_token)

    active = service.list_active_sessions(user.id)
    assert [s["id"] for s in active] == [tokens.session.id]


def test_refresh_unknown_token(service, user):
    with pytest.raises(AppError) as exc:
        service.refresh_session("deadbeef")
    assert exc.value.message == INVALID_REFRESH_TOKEN


def test_refresh_expired_token_revokes_lazily(service, db_session, user):
    """Истёкшая сессия отзывается при первой попытке refresh"""
    tokens = service.create_session(user)
    session = db_session.query(AuthSession).filter(AuthSession.id == tokens.session.id).one()
    session.expires_at = utcnow() - timedelta(seconds=1)
    db_session.commit()

    with pytest.raises(AppError) as exc:
        service.refresh_session(tokens.refresh_token)
    assert exc.value.message == EXPIRED_REFRESH_TOKEN

    db_session.refresh(session)
    assert session.is_revoked is True

    # second attempt no longer finds a non-revoked session
    with pytest.raises(AppError) as exc:
        service.refresh_session(tokens.refresh_token)
    assert exc.value.message == INVALID_REFRESH_TOKEN


def test_refresh_for_deleted_user_revokes_session(service, db_session, user):
    tokens = service.create_session(user)
    db_session.delete(user)
    db_session.commit()

    with pytest.raises(AppError) as exc:
        service.refresh_session(tokens.refresh_token)
    assert exc.value.message == "User not found. Session invalid."
    assert tokens.session.is_revoked is True


def test_refresh_with_revoked_session(service, user):
    tokens = service.create_session(user)
    service.revoke_session(tokens.session.id, user.id)

    with pytest.raises(AppError):
        service.refresh_session(tokens.refresh_token)


# ---------------------------------------------------------------------------
# revoke / list
# ---------------------------------------------------------------------------

def test_revoke_session_is_idempotent(service, user):
    tokens = service.create_session(user)
    service.revoke_session(tokens.session.id, user.id)
    service.revoke_session(tokens.session.id, user.id)
    assert service.list_active_sessions(user.id) == []


def test_revoke_foreign_session_is_unauthorized(service, user, other_user):
    """Чужую сессию отозвать нельзя"""
    tokens = service.create_session(user)

    with pytest.raises(AppError) as exc:
        service.revoke_session(tokens.session.id, other_user.id)
    assert exc.value.kind == ErrorKind.UNAUTHORIZED
    assert exc.value.message == "Session not found."
    assert len(service.list_active_sessions(user.id)) == 1


def test_revoke_unknown_session(service, user):
    with pytest.raises(AppError) as exc:
        service.revoke_session("no-such-session", user.id)
    assert exc.value.message == "Session not found."


def test_revoke_all_returns_count(service, user, other_user):
    service.create_session(user)
    service.create_session(user)
    service.create_session(other_user)

    assert service.revoke_all_sessions(user.id) == 2
    assert service.revoke_all_sessions(user.id) == 0
    assert service.list_active_sessions(user.id) == []
    assert len(service.list_active_sessions(other_user.id)) == 1


def test_list_active_sessions_hides_hash(service, user):
    service.create_session(user, ClientMeta(user_agent="ua", ip_address="ip"))
    sessions = service.list_active_sessions(user.id)

    assert len(sessions) == 1
    assert set(sessions[0]) == {"id", "userAgent", "ipAddress", "createdAt", "expiresAt"}


def test_list_active_sessions_excludes_expired(service, db_session, user):
    tokens = service.create_session(user)
    tokens.session.expires_at = utcnow() - timedelta(minutes=1)
    db_session.commit()

    assert service.list_active_sessions(user.id) == []


# ---------------------------------------------------------------------------
# validate_session
# ---------------------------------------------------------------------------

def test_validate_session_any_active(service, user):
    assert service.validate_session(user.id) is False

    first = service.create_session(user)
    second = service.create_session(user)
    service.revoke_session(first.session.id, user.id)

    # default rule: any active session of the user is enough
    assert service.validate_session(user.id, first.session.id) is True

    service.revoke_session(second.session.id, user.id)
    assert service.validate_session(user.id, first.session.id) is False


def test_validate_session_strict_binding(monkeypatch, db_session, user):
    monkeypatch.setenv("STRICT_SESSION_BINDING", "true")
    get_settings.cache_clear()
    service = SessionService(db_session)

    first = service.create_session(user)
    second = service.create_session(user)
    service.revoke_session(first.session.id, user.id)

    assert service.validate_session(user.id, first.session.id) is False
    assert service.validate_session(user.id, second.session.id) is True


# ---------------------------------------------------------------------------
# access token verification
# ---------------------------------------------------------------------------

def _encode(claims: dict, key: str = "test-secret-key") -> str:
    return jwt.encode(claims, key, algorithm="HS256")


def test_decode_expired_token_has_own_message():
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    token = _encode({"id": "u1", "email": "a@b.c", "iat": past, "exp": past + timedelta(minutes=15)})

    with pytest.raises(AppError) as exc:
        decode_access_token(token)
    assert exc.value.kind == ErrorKind.UNAUTHORIZED
    assert exc.value.message == ACCESS_TOKEN_EXPIRED


def test_decode_wrong_signature():
    now = datetime.now(timezone.utc)
    token = _encode({"id": "u1", "iat": now, "exp": now + timedelta(minutes=5)}, key="other-key")

    with pytest.raises(AppError) as exc:
        decode_access_token(token)
    assert exc.value.message == ACCESS_TOKEN_INVALID


def test_decode_garbage():
    with pytest.raises(AppError) as exc:
        decode_access_token("not-a-jwt")
    assert exc.value.message == ACCESS_TOKEN_INVALID


def test_decode_token_without_id():
    now = datetime.now(timezone.utc)
    token = _encode({"email": "a@b.c", "iat": now, "exp": now + timedelta(minutes=5)})

    with pytest.raises(AppError) as exc:
        decode_access_token(token)
    assert exc.value.message == ACCESS_TOKEN_INVALID


def test_create_access_token_without_session():
    claims = decode_access_token(create_access_token("u1", "a@b.c"))
    assert "sid" not in claims


# ---------------------------------------------------------------------------
# expiry and concurrent rotation
# ---------------------------------------------------------------------------

def test_validate_session_false_once_only_session_expired(service, db_session, user):
    """Истёкшая, но не отозванная сессия не проходит проверку"""
    tokens = service.create_session(user)
    assert service.validate_session(user.id, tokens.session.id) is True

    tokens.session.expires_at = utcnow() - timedelta(seconds=1)
    db_session.commit()

    assert service.validate_session(user.id) is False
    assert service.validate_session(user.id, tokens.session.id) is False
    # expiry alone does not flip the stored flag
    assert tokens.session.is_revoked is False


def test_refresh_loses_concurrent_rotation(service, db_session, monkeypatch, user):
    """Если другая ротация успела отозвать сессию, новая пара не выдаётся"""
    tokens = service.create_session(user)
    original_execute = db_session.execute

    def execute_after_competing_rotation(statement, *args, **kwargs):
        if isinstance(statement, Update):
            db_session.connection().exec_driver_sql(
                "UPDATE auth_sessions SET is_revoked = 1 WHERE id = ?", (tokens.session.id,)
            )
        return original_execute(statement, *args, **kwargs)

    monkeypatch.setattr(db_session, "execute", execute_after_competing_rotation)

    with pytest.raises(AppError) as exc:
        service.refresh_session(tokens.refresh_token)
    assert exc.value.message == INVALID_REFRESH_TOKEN

    assert db_session.query(AuthSession).filter(AuthSession.user_id == user.id).count() == 1
