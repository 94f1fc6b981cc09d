"""
SQLAlchemy ORM models (users, sessions, ledger, budgets)
"""
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, String, DateTime, Text, Boolean, Numeric, UniqueConstraint, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.infrastructure.db.session import Base
from app.utils.dates import utcnow

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite)
JsonType = JSON().with_variant(JSONB(), "postgresql")


def _new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """
    Registered user
    """
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Free-form key/value preferences (currency, locale, ...)
    preferences: Mapped[dict] = mapped_column(JsonType, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )


class AuthSession(Base):
    """
    Refresh-token session

    Only the SHA-256 hash of the refresh token is stored. Sessions are never
    deleted: rotation and logout flip is_revoked, which keeps an audit trail.
    """
    __tablename__ = "auth_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    refresh_token_hash: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    user_agent: Mapped[str] = mapped_column(Text, nullable=False, default="unknown")
    ip_address: Mapped[str] = mapped_column(String(64), nullable=False, default="unknown")

    is_revoked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("ix_auth_sessions_user_active", "user_id", "is_revoked"),
    )


class Transaction(Base):
    """
    Ledger entry: income or expense of a single user
    """
    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    type: Mapped[str] = mapped_column(String(16), nullable=False)  # income, expense
    category: Mapped[str] = mapped_column(String(64), nullable=False, default="other")
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=14, scale=2), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # ISO YYYY-MM-DD; kept as a string so range filters compare lexicographically
    date: Mapped[str] = mapped_column(String(10), nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )


class Budget(Base):
    """
    Monthly budget: at most one per (user, month)
    """
    __tablename__ = "budgets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    month: Mapped[str] = mapped_column(String(7), nullable=False)  # YYYY-MM

    monthly_goal: Mapped[Decimal] = mapped_column(Numeric(precision=14, scale=2), nullable=False)
    savings_target: Mapped[Decimal] = mapped_column(Numeric(precision=14, scale=2), nullable=False)
    category_budgets: Mapped[dict] = mapped_column(JsonType, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        UniqueConstraint("user_id", "month", name="uq_budget_user_month"),
    )
