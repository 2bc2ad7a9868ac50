"""
Session token utilities for the dashboard endpoints.

This module provides:
- JWT access token creation and validation (using python-jose)

The dashboard is signed in elsewhere; this service only needs to verify the
session token it is handed and read the user's email from the ``sub`` claim.
``create_access_token`` exists for the issuing side and for tests.

Unsubscribe links use a separate, purpose-built token (see
app.core.unsubscribe_token) and a separate secret.

References:
-----------
- FastAPI Security: https://fastapi.tiangolo.com/tutorial/security/oauth2-jwt/
- JWT Standard: https://jwt.io/introduction
"""

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from app.core.config import settings


# ================================
# JWT Tokens
# ================================

def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """
    Create a JWT access token.

    What's in the token?
    --------------------
    - sub (subject): User's email address
    - exp (expiration): When token expires
    - Custom claims: Any additional data passed in ``data``

    Args:
        data: Dictionary of claims to include in token
              Should include "sub" (subject) with the user's email
        expires_delta: How long until token expires
                      Defaults to JWT_ACCESS_TOKEN_EXPIRE_MINUTES from settings

    Returns:
        Encoded JWT token string

    Example:
        >>> token = create_access_token({"sub": "alice@example.com"})
        >>> decode_access_token(token)["sub"]
        'alice@example.com'
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode.update({"exp": expire})

    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """
    Decode and verify a JWT access token.

    Validation Checks:
    ------------------
    1. Signature must match JWT_SECRET_KEY
    2. Algorithm must be JWT_ALGORITHM (prevents algorithm confusion)
    3. Token must not be expired

    Returns:
        Dictionary of claims if valid, None if invalid
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        # Expired, tampered or malformed
        return None
