"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.auth import create_access_token
from config import settings
from database import Base, get_db
from main import app
from utils.rate_limit import reset_rate_limits
# Pytest fixtures - imported to make them available to tests
from tests.fixtures import (  # noqa: F401
    approved_rating,
    pending_rating,
)

TEST_SECRET = "test-secret-key-for-review-popup-tests"


@pytest.fixture(autouse=True)
def auth_secret(monkeypatch):
    """Sign and verify test tokens with a fixed secret."""
    monkeypatch.setattr(settings, "AUTH_SECRET_KEY", TEST_SECRET)


@pytest.fixture(autouse=True)
def clear_rate_limits():
    """Start every test with empty rate limit windows."""
    reset_rate_limits()
    yield
    reset_rate_limits()


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="session_factory")
def session_factory_fixture(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(name="db")
def db_fixture(session_factory):
    """Create a database session for testing."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(name="client")
def client_fixture(db):
    """Create a test client with the test database."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="user_headers")
def user_headers_fixture():
    """Bearer headers for an ordinary authenticated user."""
    token = create_access_token("user-1", name="Ada Lovelace")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(name="other_user_headers")
def other_user_headers_fixture():
    """Bearer headers for a second authenticated user."""
    token = create_access_token("user-2", name="Grace Hopper")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(name="admin_headers")
def admin_headers_fixture():
    """Bearer headers for an admin."""
    token = create_access_token("admin-1", name="Admin User", role="admin")
    return {"Authorization": f"Bearer {token}"}
