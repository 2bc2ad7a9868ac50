"""
One-click unsubscribe from an email footer link.

Single pass, no retries:

    validate input → verify token → resolve user → resolve scope → mutate → respond

The database is not touched until the token has verified, so the endpoint
cannot be used as an oracle for guessing user ids. Every failure maps to one
of four errors with a fixed, generic public message.
"""

from collections.abc import Callable
from typing import Any

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.core.unsubscribe_token import verify_unsubscribe_token
from app.models.user import User, UserPreferences
from app.services.preference_store import PreferenceStore, Scope, TransientStoreFailure

logger = get_logger(__name__)


# ========================================
# Error Taxonomy
# ========================================


class UnsubscribeError(Exception):
    """
    Base class for unsubscribe failures.

    Each subclass carries the HTTP status and the public message returned to
    the caller. Messages never include token contents or internal detail.
    """

    code: str = "unsubscribe_failed"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Failed to process unsubscribe request"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)


class MissingToken(UnsubscribeError):
    code = "missing_token"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Token is required"


class InvalidToken(UnsubscribeError):
    """Malformed, forged and expired tokens all land here, indistinguishably."""

    code = "invalid_token"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid or expired unsubscribe token"


class UserNotFound(UnsubscribeError):
    code = "user_not_found"
    status_code = status.HTTP_404_NOT_FOUND
    message = "User not found"


class StoreUnavailable(UnsubscribeError):
    """The preference store failed; the request is safe to resubmit."""

    code = "store_unavailable"


# ========================================
# Handler
# ========================================


TokenVerifier = Callable[[str], "int | None"]


class UnsubscribeHandler:
    """
    Orchestrates an unsubscribe request against one database session.

    Args:
        session: Request-scoped database session (committed on success)
        verifier: Token verification function, returns a user id or None.
                  Injected so tests can pin the clock and key.

    Example:
        >>> handler = UnsubscribeHandler(db)
        >>> prefs = await handler.unsubscribe(token, "weekly")
        >>> prefs.weekly_digest
        False
    """

    def __init__(
        self,
        session: AsyncSession,
        verifier: TokenVerifier = verify_unsubscribe_token,
    ):
        self.session = session
        self.verifier = verifier

    async def unsubscribe(self, token: Any, scope: Any = None) -> UserPreferences:
        """
        Apply an unsubscribe request.

        Args:
            token: Opaque token from the link (may be missing or junk)
            scope: Requested category; unknown or missing values mean "all"

        Returns:
            The preferences record after the change

        Raises:
            MissingToken: No token supplied
            InvalidToken: Token failed verification
            UserNotFound: Token verified but the user no longer exists
            StoreUnavailable: Database failure (retryable)
        """
        try:
            prefs = await self._run(token, scope)
        except UnsubscribeError as e:
            logger.info("unsubscribe_rejected", code=e.code)
            raise
        return prefs

    async def _run(self, token: Any, scope: Any) -> UserPreferences:
        # 1. Validate input
        if not isinstance(token, str) or not token:
            raise MissingToken()

        # 2. Verify (pure, no I/O)
        user_id = self.verifier(token)
        if user_id is None:
            raise InvalidToken()

        # 3. Resolve user
        try:
            result = await self.session.execute(
                select(User.id).where(User.id == user_id)
            )
        except SQLAlchemyError as e:
            logger.error("unsubscribe_user_lookup_failed", error_type=type(e).__name__)
            await self.session.rollback()
            raise StoreUnavailable() from e
        if result.scalar_one_or_none() is None:
            raise UserNotFound()

        # 4. Resolve scope
        resolved = Scope.parse(scope)

        # 5. Mutate
        store = PreferenceStore(self.session)
        try:
            prefs = await store.apply_scope(user_id, resolved)
            await self.session.commit()
        except TransientStoreFailure as e:
            raise StoreUnavailable() from e
        except SQLAlchemyError as e:
            logger.error("unsubscribe_commit_failed", error_type=type(e).__name__)
            await self.session.rollback()
            raise StoreUnavailable() from e

        logger.info("unsubscribe_applied", user_id=user_id, scope=resolved.value)
        return prefs
