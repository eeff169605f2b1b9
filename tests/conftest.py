"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.config import Settings
from app.database import get_db
from app.models.user import User  # noqa: F401
from app.services.accounts import AccountService


@pytest.fixture(name="settings")
def settings_fixture() -> Settings:
    """Settings for an in-memory database, cheap hashing and no rate limits."""
    settings = Settings()
    settings.DATABASE_URL = "sqlite://"
    settings.DB_AUTO_CREATE = True
    settings.BCRYPT_ROUNDS = 4
    settings.RATE_LIMIT_ENABLED = False
    settings.PUBLIC_BASE_URL = ""
    settings.DEBUG = False
    return settings


@pytest.fixture(name="app")
def app_fixture(settings: Settings):
    from main import create_app

    return create_app(settings)


@pytest.fixture(name="db_session")
def db_session_fixture(app):
    """A session on the app's in-memory database."""
    database = app.state.database
    database.create_all()
    session = database.session_factory()
    try:
        yield session
    finally:
        session.close()
        database.dispose()


@pytest.fixture(name="service")
def service_fixture(app) -> AccountService:
    return app.state.account_service


@pytest.fixture(name="client")
def client_fixture(app, db_session: Session):
    """Create a test client sharing the test DB session."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
        # Release the shared connection before shutdown disposes the engine
        db_session.close()
    app.dependency_overrides.clear()


@pytest.fixture(name="lenient_client")
def lenient_client_fixture(app, db_session: Session):
    """Like client, but unhandled errors come back as 500 responses instead of raising."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
        db_session.close()
    app.dependency_overrides.clear()


@pytest.fixture(name="test_user")
def test_user_fixture(db_session: Session, service: AccountService) -> dict:
    """Register a test user and return its public fields plus the password."""
    result = service.register(db_session, "Test User", "test@example.com", "password123", "Canada")
    assert result.success
    return {
        "id": result.value.id,
        "name": result.value.name,
        "email": result.value.email,
        "password": "password123",
    }
