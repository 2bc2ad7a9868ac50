"""
Database Dependencies for FastAPI Routes

This module provides dependency injection functions for database sessions.

Routes declare what they need and FastAPI provides it:

    @router.get("/user/preferences")
    async def get_preferences(db: DBSession):
        ...

Each request gets its own AsyncSession. Nothing is shared between
requests, which is what lets concurrent unsubscribe calls for the same
user be arbitrated by the database (the unique constraint + upsert)
rather than by application code.

Learning Resources:
- FastAPI Dependencies: https://fastapi.tiangolo.com/tutorial/dependencies/
"""

from collections.abc import AsyncGenerator, Callable
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_session


# ================================
# Database Session Dependency
# ================================

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session.

    Transaction Management:
    -----------------------
    - Changes are isolated from other requests
    - Services commit explicitly: await db.commit()
    - Rollback happens automatically on errors (see get_session)

    Yields:
        AsyncSession: Database session for the current request
    """
    async for session in get_session():
        yield session


# Reusable annotation: `db: DBSession` instead of `db: AsyncSession = Depends(get_db)`
DBSession = Annotated[AsyncSession, Depends(get_db)]


# ================================
# Testing Helpers
# ================================

def get_db_override(
    session_factory: Callable[[], AsyncSession],
) -> Callable[[], AsyncGenerator[AsyncSession, None]]:
    """
    Create a dependency override for testing.

    Takes a session *factory* rather than a session so that every request in
    a test still gets its own session, exactly like production. Concurrency
    tests depend on this.

    Usage in Tests:
    ---------------
        app.dependency_overrides[get_db] = get_db_override(test_sessionmaker)
        response = await client.get("/api/v1/user/preferences", headers=...)
        app.dependency_overrides.clear()

    Args:
        session_factory: Callable returning a new AsyncSession (an async_sessionmaker)

    Returns:
        A dependency function that yields one fresh session per request
    """
    async def _override() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    return _override


__all__ = [
    "get_db",
    "DBSession",
    "get_db_override",
]
