"""
Preference store: the only code that writes user_preferences.

Every mutation is a single INSERT ... ON CONFLICT (user_id) statement, so the
"create the row with defaults if it doesn't exist yet" step and the flag
change happen atomically in the database:

    INSERT INTO user_preferences (user_id, email_notifications, weekly_digest,
                                  new_skill_alerts, pack_alerts, ...)
    VALUES (:user_id, true, false, true, true, ...)           -- defaults + override
    ON CONFLICT (user_id) DO UPDATE
        SET weekly_digest = false, updated_at = :now           -- override only

Two concurrent requests for a user without a row therefore never produce two
rows (the unique constraint arbitrates) and never lose each other's flag
change (the loser of the insert race falls into DO UPDATE).

There is no separate existence check anywhere in this module.
"""

import enum
from collections.abc import Mapping
from typing import Any

from sqlalchemy import Select, and_, or_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.db.base import utcnow
from app.models.user import PREFERENCE_FLAGS, User, UserPreferences

logger = get_logger(__name__)


# ========================================
# Custom Exceptions
# ========================================


class PreferenceStoreError(Exception):
    """Base exception for preference store errors."""
    pass


class TransientStoreFailure(PreferenceStoreError):
    """
    Raised when the backing database fails (connection lost, timeout, lock).

    Every store operation is idempotent, so callers may safely resubmit.
    """
    pass


class InvalidPreferences(PreferenceStoreError):
    """Raised when a full-record write is missing flags or has non-boolean values."""
    pass


# ========================================
# Scope
# ========================================


class Scope(str, enum.Enum):
    """
    Which category an unsubscribe link revokes.

    Each scope maps to exactly one flag. Anything that is not a known scope
    (missing, empty, misspelled) is treated as ALL: the widest revocation is
    the safe reading of an ambiguous request.
    """

    ALL = "all"
    WEEKLY = "weekly"
    ALERTS = "alerts"

    @property
    def flag(self) -> str:
        """Column set to False by this scope."""
        return _SCOPE_FLAGS[self]

    @classmethod
    def parse(cls, value: Any) -> "Scope":
        """Map a raw request value to a scope. Matching is exact; anything else is ALL."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                pass
        return cls.ALL


_SCOPE_FLAGS: dict[Scope, str] = {
    Scope.ALL: "email_notifications",
    Scope.WEEKLY: "weekly_digest",
    Scope.ALERTS: "new_skill_alerts",
}

# Category columns that recipient selection can filter on
CATEGORY_FLAGS = ("weekly_digest", "new_skill_alerts", "pack_alerts")

# Default matrix for a lazily created record: everything on
DEFAULT_PREFERENCES: dict[str, bool] = {flag: True for flag in PREFERENCE_FLAGS}


# ========================================
# Preference Store
# ========================================


class PreferenceStore:
    """
    Read and write a user's notification flags.

    The store does not commit; the caller owns the transaction boundary
    (one request, one commit). On a database error the session is rolled
    back and TransientStoreFailure is raised.

    Example:
        >>> store = PreferenceStore(db)
        >>> prefs = await store.apply_scope(user.id, Scope.WEEKLY)
        >>> prefs.weekly_digest
        False
        >>> await db.commit()
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # ========================================
    # Operations
    # ========================================

    async def apply_scope(self, user_id: int, scope: Scope) -> UserPreferences:
        """
        Turn off the flag for ``scope``, creating the record if needed.

        Only the scoped flag and updated_at are written on an existing row;
        the other three flags keep their stored values.

        Args:
            user_id: Owner of the preferences row
            scope: Category to revoke

        Returns:
            The record as stored after the write

        Raises:
            TransientStoreFailure: On any database error
        """
        scope = Scope.parse(scope)
        flag = scope.flag

        values = {**DEFAULT_PREFERENCES, flag: False}
        await self._upsert(user_id, values, update={flag: False})

        logger.info("preferences_scope_applied", user_id=user_id, scope=scope.value, flag=flag)
        return await self._load(user_id)

    async def read_or_create(self, user_id: int) -> UserPreferences:
        """
        Return the user's record, creating it with the default matrix if absent.

        An existing record is never modified.
        """
        await self._upsert(user_id, DEFAULT_PREFERENCES, update=None)
        return await self._load(user_id)

    async def replace(self, user_id: int, values: Mapping[str, Any]) -> UserPreferences:
        """
        Overwrite all four flags at once (authenticated dashboard path).

        Args:
            user_id: Owner of the preferences row
            values: Mapping containing exactly the four flag names with bool values

        Raises:
            InvalidPreferences: If a flag is missing, unknown, or not a bool
            TransientStoreFailure: On any database error
        """
        flags = validate_flags(values)
        await self._upsert(user_id, flags, update=flags)

        logger.info("preferences_replaced", user_id=user_id, **flags)
        return await self._load(user_id)

    async def recipients_for(self, category: str) -> list[User]:
        """
        Users who currently consent to emails of ``category``.

        A user qualifies when the master switch and the category flag are
        both on. Users without a preferences row have never opted out, so
        the default matrix applies and they qualify too. Inactive accounts
        are excluded.

        Args:
            category: One of weekly_digest, new_skill_alerts, pack_alerts
        """
        if category not in CATEGORY_FLAGS:
            raise ValueError(f"Unknown notification category: {category}")

        column = getattr(UserPreferences, category)
        stmt: Select = (
            select(User)
            .outerjoin(UserPreferences, UserPreferences.user_id == User.id)
            .where(User.is_active.is_(True))
            .where(
                or_(
                    UserPreferences.id.is_(None),
                    and_(
                        UserPreferences.email_notifications.is_(True),
                        column.is_(True),
                    ),
                )
            )
            .order_by(User.id)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise await self._transient(e, "recipients_for") from e
        return list(result.scalars().all())

    # ========================================
    # Internals
    # ========================================

    def _insert(self):
        """Dialect-specific INSERT supporting ON CONFLICT."""
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(UserPreferences)
        if dialect == "sqlite":
            return sqlite.insert(UserPreferences)
        raise NotImplementedError(f"No upsert support for dialect {dialect!r}")

    async def _upsert(
        self,
        user_id: int,
        values: Mapping[str, bool],
        update: Mapping[str, bool] | None,
    ) -> None:
        """
        Insert ``values`` for ``user_id``; on conflict apply ``update`` (or nothing).
        """
        now = utcnow()
        stmt = self._insert().values(
            user_id=user_id,
            created_at=now,
            updated_at=now,
            **values,
        )
        if update:
            stmt = stmt.on_conflict_do_update(
                index_elements=["user_id"],
                set_={**update, "updated_at": now},
            )
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=["user_id"])

        try:
            await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise await self._transient(e, "upsert", user_id=user_id) from e

    async def _load(self, user_id: int) -> UserPreferences:
        # populate_existing: the upsert bypassed the identity map
        stmt = (
            select(UserPreferences)
            .where(UserPreferences.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise await self._transient(e, "load", user_id=user_id) from e
        return result.scalar_one()

    async def _transient(self, error: Exception, operation: str, **context: Any) -> TransientStoreFailure:
        logger.error(
            "preference_store_failure",
            operation=operation,
            error_type=type(error).__name__,
            **context,
        )
        await self.session.rollback()
        return TransientStoreFailure(f"Preference store {operation} failed")


def validate_flags(values: Mapping[str, Any]) -> dict[str, bool]:
    """
    Check that ``values`` holds exactly the four flags, each a real bool.

    ``1``/``0``/``"true"`` are rejected: no coercion for consent settings.
    """
    if not isinstance(values, Mapping):
        raise InvalidPreferences("Preferences must be an object")

    missing = [flag for flag in PREFERENCE_FLAGS if flag not in values]
    unknown = [key for key in values if key not in PREFERENCE_FLAGS]
    if missing or unknown:
        raise InvalidPreferences(
            f"Expected exactly {', '.join(PREFERENCE_FLAGS)}; "
            f"missing={missing} unknown={unknown}"
        )

    not_bool = [flag for flag in PREFERENCE_FLAGS if not isinstance(values[flag], bool)]
    if not_bool:
        raise InvalidPreferences(f"Flags must be booleans: {', '.join(not_bool)}")

    return {flag: values[flag] for flag in PREFERENCE_FLAGS}
