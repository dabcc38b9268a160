"""
Shared test fixtures for Travel API tests.

Provides an in-memory database, test clients, users and bearer tokens.
"""

import os

# Must be set before the application modules build their engine
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")

from collections.abc import AsyncGenerator
from datetime import timedelta
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from travel_api.auth.password import hash_password
from travel_api.auth.roles import Role
from travel_api.database import Base, get_db
from travel_api.main import app
from travel_api.middleware.rate_limit import LIMIT_CLASSES, ClientRateLimiter, RateLimiters

# Import models so they're registered with Base.metadata before table creation
from travel_api.models import Feedback, User  # noqa: F401


class FakeClock:
    """Manually advanced clock for deterministic bucket arithmetic."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# --- Rate Limiter Fixtures ---


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Reset every limiter before each test to ensure test isolation."""
    app.state.rate_limiters.reset_all()
    yield


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_limiters(fake_clock: FakeClock):
    """
    Swap the application limiters for fake-clock ones.

    Parameters mirror the production defaults so tests exercise real budgets.
    """
    config = app.state.settings
    limiters = RateLimiters(
        {
            name: ClientRateLimiter(
                rate=config.rate_limit_class(name).rate,
                burst=config.rate_limit_class(name).burst,
                idle_ttl=config.rate_limit_idle_ttl_seconds,
                clock=fake_clock,
                name=name,
                start_sweeper=False,
            )
            for name in LIMIT_CLASSES
        }
    )
    original = app.state.rate_limiters
    app.state.rate_limiters = limiters
    yield limiters
    app.state.rate_limiters = original


# --- Database Fixtures ---


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Fresh in-memory database per test function.
    StaticPool keeps the single connection alive for the whole test.
    """
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session
        await session.rollback()

    await test_engine.dispose()


@pytest.fixture
def make_client(db_session: AsyncSession):
    """Factory for HTTP clients appearing to come from a given IP."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    def _make_client(ip: str = "127.0.0.1") -> AsyncClient:
        transport = ASGITransport(app=app, client=(ip, 50000))
        return AsyncClient(transport=transport, base_url="http://test", follow_redirects=True)

    yield _make_client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def async_client(make_client) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client configured for testing."""
    async with make_client() as client:
        yield client


# --- Authentication Helper Fixtures ---


@pytest.fixture
def token_service():
    return app.state.token_service


@pytest.fixture
def auth_headers(token_service):
    """Factory fixture for Bearer headers for a user dict or raw (id, role)."""

    def _auth_headers(user: dict[str, Any] | None = None, *, user_id: int | None = None,
                      role: int | None = None, ttl: timedelta = timedelta(hours=1)) -> dict[str, str]:
        subject = user["id"] if user else user_id
        role_id = user["role_id"] if user else role
        token = token_service.issue(subject, role_id, ttl)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture
def valid_registration_data() -> dict[str, str]:
    """Valid user registration payload."""
    return {
        "email": "newuser@example.com",
        "password": "secret123",
        "full_name": "New User",
    }


# --- User Fixtures ---


async def _create_user(
    db_session: AsyncSession,
    email: str,
    password: str,
    role_id: int,
    full_name: str = "",
) -> dict[str, Any]:
    """Helper to create a user directly in the database."""
    user = User(
        email=email,
        password_hash=hash_password(password),
        full_name=full_name,
        role_id=role_id,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)

    return {
        "id": user.id,
        "email": user.email,
        "password": password,
        "role_id": user.role_id,
    }


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> dict[str, Any]:
    """Create a regular user (role 1)."""
    return await _create_user(db_session, "user@example.com", "userpass1", Role.USER, "Test User")


@pytest_asyncio.fixture
async def test_admin(db_session: AsyncSession) -> dict[str, Any]:
    """Create an admin user (role 2)."""
    return await _create_user(db_session, "admin@example.com", "adminpass1", Role.ADMIN, "Admin")


@pytest.fixture
def frozen_time():
    """
    Fixture for time-based testing using freezegun.

    Usage:
        with frozen_time("2026-02-01 12:00:00"):
            # time is frozen
    """
    from freezegun import freeze_time

    return freeze_time
