import hashlib
import secrets
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from app.config import get_settings
from app.domain.errors import unauthorized
from app.domain.session import parse_duration
from app.infrastructure.db.models import User

# pbkdf2_sha256: salted and slow, pure Python
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

DEFAULT_ACCESS_LIFETIME = timedelta(minutes=15)

ACCESS_TOKEN_EXPIRED = "Access token has expired. Use your refresh token to get a new one."
ACCESS_TOKEN_INVALID = "Invalid access token. Please login again."


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email).first()


def generate_refresh_token() -> str:
    """40 random bytes, hex-encoded (320 bits of entropy)."""
    return secrets.token_hex(40)


def hash_token(token: str) -> str:
    # SHA-256 hex digest (64 chars)
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_access_token(user_id: str, email: str, session_id: str | None = None) -> str:
    """Short-lived HS256 JWT carrying {id, email, sid}."""
    settings = get_settings()
    issued_at = datetime.now(timezone.utc)
    lifetime = parse_duration(settings.ACCESS_TOKEN_EXPIRES_IN, default=DEFAULT_ACCESS_LIFETIME)
    claims = {
        "id": user_id,
        "email": email,
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    if session_id:
        claims["sid"] = session_id
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Verify signature and expiry of an access token

    Raises:
        AppError(UNAUTHORIZED): expired and invalid tokens get distinct messages
    """
    settings = get_settings()
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise unauthorized(ACCESS_TOKEN_EXPIRED)
    except JWTError:
        raise unauthorized(ACCESS_TOKEN_INVALID)

    if not claims.get("id"):
        raise unauthorized(ACCESS_TOKEN_INVALID)
    return claims
