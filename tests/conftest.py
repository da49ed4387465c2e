import os

# Must be set before the application modules read their settings
os.environ["ENV"] = "testing"
os.environ["SECRET_KEY"] = "test-secret-key-do-not-use-in-production"
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ.setdefault("LOG_DIR", "logs")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from typing import Generator

from main import app
from core.config import settings
from core.database import Base
from services.signing_service import SigningService
from services.token_service import TokenService
from services.user_store import UserStore
from utils.deps import get_db
from utils.hashing import get_password_hash

TEST_PASSWORD = "TestPassword123"

# SYNC SQLite for testing (matches sync service layer)
engine = create_engine(
    settings.DATABASE_URL,
    connect_args={"check_same_thread": False}
)

TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """
    Creates a fresh, empty database for each test.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory(session):
    """
    Opens extra sessions on the test database, one per simulated server
    process. Depends on `session` so the tables exist.
    """
    return TestingSessionLocal


@pytest.fixture
def store(session) -> UserStore:
    return UserStore(session)


@pytest.fixture
def signer() -> SigningService:
    return SigningService.from_settings(settings)


@pytest.fixture
def token_service(store, signer) -> TokenService:
    return TokenService(store, signer)


@pytest.fixture
def test_user(store):
    return store.create(
        username="testuser",
        email="testuser@example.com",
        hashed_password=get_password_hash(TEST_PASSWORD)
    )


@pytest.fixture
async def client(session: Session):
    """
    Yields an HTTP client that talks to the app using the test database.
    """
    def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def logged_in(client, test_user):
    """Logs `test_user` in through the API and returns the response body."""
    response = await client.post("/auth/login", json={
        "email": test_user.email,
        "password": TEST_PASSWORD
    })
    assert response.status_code == 200
    return response.json()
