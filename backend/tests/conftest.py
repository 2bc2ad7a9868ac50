"""
Pytest configuration and fixtures.

This file is automatically discovered by pytest and provides
shared fixtures for all test modules.

Each test gets its own file-backed SQLite database (aiosqlite). A file,
rather than :memory:, lets concurrent requests open independent
connections to the same data, which the concurrency tests need.

References:
-----------
- Pytest Fixtures: https://docs.pytest.org/en/stable/fixture.html
- FastAPI Testing: https://fastapi.tiangolo.com/tutorial/testing/
"""

import os

# Settings are read at import time; configure before importing the app
os.environ["APP_ENV"] = "testing"
os.environ["DEBUG"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-0123456789abcdef0123456789"
os.environ["JWT_SECRET_KEY"] = "test-jwt-key-0123456789abcdef0123456789abc"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["UNSUBSCRIBE_SECRET"] = "test-unsubscribe-key-0123456789abcdef0123"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_FORMAT"] = "text"

from datetime import timedelta
from pathlib import Path
from typing import AsyncGenerator, Callable, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.core.security import create_access_token
from app.core.unsubscribe_token import generate_unsubscribe_token
from app.db.base import Base
from app.db.deps import get_db, get_db_override
from app.db.session import create_engine, create_sessionmaker
from app.main import app
from app.models.user import User, UserPreferences

TEST_UNSUBSCRIBE_SECRET = os.environ["UNSUBSCRIBE_SECRET"]


# ================================
# Database Fixtures
# ================================

@pytest_asyncio.fixture
async def test_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """
    Create a fresh SQLite database for one test.

    Tables come straight from the models (same as development).
    """
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test database."""
    return create_sessionmaker(test_engine)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """
    A session for arranging and inspecting data directly.

    API requests made through ``client`` use their own sessions, so read
    back with ``fetch_preferences`` (a fresh session) after a request.
    """
    async with session_factory() as session:
        yield session


# ================================
# FastAPI Client Fixtures
# ================================

@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create an async HTTP client for testing FastAPI endpoints.

    Overrides the get_db dependency so every request gets its own session
    on the test database.

    Usage:
        async def test_something(client: AsyncClient):
            response = await client.get("/api/v1/user/preferences")
            assert response.status_code == 401
    """
    app.dependency_overrides[get_db] = get_db_override(session_factory)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    # Clean up
    app.dependency_overrides.clear()


# ================================
# User Fixtures
# ================================

async def _create_user(session: AsyncSession, email: str, username: str, is_active: bool = True) -> User:
    user = User(
        email=email,
        username=username,
        name=username.title(),
        is_active=is_active,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """An active user with no preferences record yet."""
    return await _create_user(db_session, "test@example.com", "tester")


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    """A second active user, for isolation checks."""
    return await _create_user(db_session, "other@example.com", "other")


@pytest_asyncio.fixture
async def inactive_user(db_session: AsyncSession) -> User:
    """A disabled account."""
    return await _create_user(db_session, "inactive@example.com", "inactive", is_active=False)


@pytest.fixture
def fetch_preferences(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable:
    """
    Read a user's preferences row through a fresh session.

    Returns None when the user has no row.
    """
    async def _fetch(user_id: int) -> Optional[UserPreferences]:
        async with session_factory() as session:
            result = await session.execute(
                select(UserPreferences).where(UserPreferences.user_id == user_id)
            )
            return result.scalar_one_or_none()

    return _fetch


@pytest.fixture
def count_preferences(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable:
    """Count preferences rows for a user through a fresh session."""
    async def _count(user_id: int) -> int:
        async with session_factory() as session:
            result = await session.execute(
                select(UserPreferences.id).where(UserPreferences.user_id == user_id)
            )
            return len(result.all())

    return _count


# ================================
# Token Fixtures
# ================================

@pytest.fixture
def unsubscribe_token(test_user: User) -> str:
    """A valid unsubscribe token for test_user."""
    return generate_unsubscribe_token(test_user.id, secret=TEST_UNSUBSCRIBE_SECRET)


@pytest.fixture
def auth_headers(test_user: User) -> dict[str, str]:
    """
    Create authentication headers with a session JWT.

    Usage:
        async def test_protected_endpoint(client: AsyncClient, auth_headers: dict):
            response = await client.get("/api/v1/user/preferences", headers=auth_headers)
            assert response.status_code == 200
    """
    token = create_access_token(
        data={"sub": test_user.email},
        expires_delta=timedelta(minutes=30)
    )

    return {
        "Authorization": f"Bearer {token}"
    }


@pytest.fixture
def expired_token(test_user: User) -> str:
    """Create a session JWT that expired an hour ago."""
    return create_access_token(
        data={"sub": test_user.email},
        expires_delta=timedelta(hours=-1)
    )
