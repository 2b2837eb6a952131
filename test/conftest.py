"""
Pytest configuration and fixtures for the BoligDeposit privacy service tests
"""

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from boligdeposit.auth import create_access_token
from boligdeposit.config import Settings
from boligdeposit.constants.auth import ADMIN_ROLE
from boligdeposit.database import Base, build_engine
from boligdeposit.services.gdpr_service import GDPRCompliance
from boligdeposit.utils.crypto import build_fernet
from main import create_app

# In-memory SQLite shared across sessions through a StaticPool
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = build_engine(TEST_DATABASE_URL)

TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)

START_TIME = datetime(2026, 1, 15, 12, 0, 0)


class FrozenClock:
    """Callable clock for services; tests move it forward explicitly."""

    def __init__(self, now: datetime = START_TIME):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
async def setup_test_database():
    """Fresh tables for every test."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def test_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionLocal() as session:
        yield session


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        database_url=TEST_DATABASE_URL,
        secret_key="test-secret-key",
        scheduler_enabled=False,
        log_json=False,
        allowed_origins=["http://testserver"],
    )


@pytest.fixture
def fernet(test_settings):
    return build_fernet(test_settings.storage_encryption_key, test_settings.secret_key)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def gdpr(test_settings, clock) -> GDPRCompliance:
    return GDPRCompliance(TestSessionLocal, test_settings, clock=clock)


@pytest.fixture
def app(test_settings, gdpr):
    application = create_app(
        session_factory=TestSessionLocal,
        settings=test_settings,
        start_scheduler=False,
        configure_logging=False,
    )
    # Share the frozen clock with route tests
    application.state.gdpr = gdpr
    return application


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="https://testserver") as ac:
        yield ac


@pytest.fixture
def user_id() -> str:
    return "u1"


@pytest.fixture
def auth_headers(user_id) -> dict:
    """Bearer token for a regular tenant."""
    token = create_access_token(data={"sub": user_id}, expires_delta=timedelta(minutes=30))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_auth_headers() -> dict:
    token = create_access_token(data={"sub": "dpo-1", "role": ADMIN_ROLE}, expires_delta=timedelta(minutes=30))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def engine():
    return test_engine


@pytest.fixture
def session_factory():
    return TestSessionLocal
