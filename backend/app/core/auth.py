"""
Authentication dependencies for FastAPI.

This module provides:
- HTTP bearer scheme for the dashboard session token
- Dependency injection for protected routes

Usage in routes:
----------------
    @router.get("/user/preferences")
    async def get_preferences(
        current_user: User = Depends(get_current_active_user),
    ):
        ...

References:
-----------
- FastAPI Security Tutorial: https://fastapi.tiangolo.com/tutorial/security/oauth2-jwt/
"""

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import decode_access_token
from app.db.deps import get_db
from app.models.user import User

# ================================
# Bearer Scheme
# ================================

# auto_error=False: a missing header becomes our own 401 instead of FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


# ================================
# Authentication Functions
# ================================

async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Get the current authenticated user from the session JWT.

    How it works:
    -------------
    1. HTTPBearer extracts the token from the Authorization header
    2. Decode and verify the JWT
    3. Read the user's email from the "sub" claim
    4. Load the user from the database

    Raises:
        HTTPException 401: If the token is missing, invalid, expired, or the
        user no longer exists. The response never says which.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise credentials_exception

    email: str | None = payload.get("sub")
    if email is None:
        raise credentials_exception

    result = await db.execute(
        select(User).where(User.email == email)
    )
    user = result.scalar_one_or_none()

    if user is None:
        raise credentials_exception

    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Get the current user and verify they are active.

    Raises:
        HTTPException 400: If user account is disabled
    """
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )
    return current_user
