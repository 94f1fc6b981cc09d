"""
Database session management (SQLAlchemy)
"""
from pathlib import Path

import psycopg
from sqlalchemy import create_engine, text
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from app.config import get_settings


class Base(DeclarativeBase):
    """
    SQLAlchemy declarative base for all ORM models
    """
    pass


# Singleton engine and session factory
_engine = None
_SessionLocal = None


def _ensure_sqlite_dir(url: str) -> None:
    """Create the directory of a file-backed SQLite database."""
    if "///" not in url:
        return
    path = url.split("///", 1)[1]
    if path and path != ":memory:":
        Path(path).resolve().parent.mkdir(parents=True, exist_ok=True)


def get_engine():
    """Get or create SQLAlchemy engine (singleton)"""
    global _engine
    if _engine is None:
        settings = get_settings()
        url = settings.get_sqlalchemy_url()
        if settings.is_sqlite:
            _ensure_sqlite_dir(url)
            _engine = create_engine(url, connect_args={"check_same_thread": False})
        else:
            _engine = create_engine(url, pool_pre_ping=True)
    return _engine


def get_session_factory():
    """Get or create session factory (singleton)"""
    global _SessionLocal
    if _SessionLocal is None:
        engine = get_engine()
        _SessionLocal = sessionmaker(
            bind=engine, autoflush=False, autocommit=False, expire_on_commit=False
        )
    return _SessionLocal


def get_db() -> Session:
    """
    Dependency for FastAPI - opens a session and always closes it

    Usage:
        @router.get("/transactions")
        def list_transactions(db: Session = Depends(get_db)):
            ...
    """
    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create all tables that do not exist yet."""
    # models must be imported so that their tables are registered on Base
    from app.infrastructure.db import models  # noqa: F401

    Base.metadata.create_all(get_engine())


def dispose_engine() -> None:
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


def check_db_connection() -> None:
    """
    Health check - verify the database is reachable

    PostgreSQL is checked with a raw psycopg connection, everything else
    through the SQLAlchemy engine.

    Raises:
        psycopg.OperationalError / sqlalchemy.exc.OperationalError
    """
    settings = get_settings()
    if settings.DATABASE_URL.startswith("postgresql"):
        dsn = settings.DATABASE_URL.replace("postgresql+psycopg://", "postgresql://", 1)
        with psycopg.connect(dsn, connect_timeout=3) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return

    with get_engine().connect() as conn:
        conn.execute(text("SELECT 1"))
