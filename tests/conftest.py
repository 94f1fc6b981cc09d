"""
Pytest fixtures for testing
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db
from app.application.users import UserService
from app.config import get_settings
from app.infrastructure.cache import AnalyticsCache
from app.infrastructure.db import models  # noqa: F401  (registers tables)
from app.infrastructure.db.session import Base
from app.main import create_app

TEST_PASSWORD = "password123"


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """Isolated settings for every test (no .env, fixed secret)."""
    monkeypatch.setenv("SECRET_KEY", "test-secret-key")
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.setenv("ACCESS_TOKEN_EXPIRES_IN", "15m")
    monkeypatch.setenv("REFRESH_TOKEN_EXPIRES_IN", "7d")
    monkeypatch.delenv("STRICT_SESSION_BINDING", raising=False)
    monkeypatch.delenv("CORS_ORIGINS", raising=False)
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def db_engine():
    """In-memory SQLite engine shared across threads (TestClient runs sync routes in a pool)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory) -> Session:
    """Create database session for tests"""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def cache():
    return AnalyticsCache(default_ttl_seconds=300)


@pytest.fixture
def make_user(db_session):
    """Factory: register a user through the service."""
    def _make(email="alice@example.com", name="Alice", password=TEST_PASSWORD, preferences=None):
        return UserService(db_session).register(name, email, password, preferences)
    return _make


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def other_user(make_user):
    return make_user(email="bob@example.com", name="Bob")


@pytest.fixture
def app(session_factory, cache):
    """FastAPI app wired to the test database and cache (lifespan is not run)."""
    application = create_app()

    def _get_test_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    application.dependency_overrides[get_db] = _get_test_db
    application.state.cache = cache
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """Test client for FastAPI"""
    return TestClient(app)


@pytest.fixture
def register_and_login(client):
    """Register + login through the API, return the login payload."""
    def _login(email="carol@example.com", name="Carol", password=TEST_PASSWORD):
        res = client.post("/api/v1/users", json={"name": name, "email": email, "password": password})
        assert res.status_code == 201, res.text
        res = client.post("/api/v1/users/login", json={"email": email, "password": password})
        assert res.status_code == 200, res.text
        return res.json()["data"]
    return _login


@pytest.fixture
def auth_header():
    def _header(token: str) -> dict:
        return {"Authorization": f"Bearer {token}"}
    return _header
