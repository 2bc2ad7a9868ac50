"""
Preference store tests.

Tests for:
- Scope parsing
- Scoped unsubscribe upsert (creation, isolation, idempotence)
- Read-or-create and full replace
- Recipient selection
- Concurrent writers for a user without a record
- Database failures surfacing as TransientStoreFailure
"""

import asyncio
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.services.preference_store import (
    DEFAULT_PREFERENCES,
    InvalidPreferences,
    PreferenceStore,
    Scope,
    TransientStoreFailure,
    validate_flags,
)


ALL_ON = {
    "email_notifications": True,
    "weekly_digest": True,
    "new_skill_alerts": True,
    "pack_alerts": True,
}


# ================================
# Scope
# ================================

class TestScope:
    """Scope parsing and flag mapping."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("all", Scope.ALL),
            ("weekly", Scope.WEEKLY),
            ("alerts", Scope.ALERTS),
            (None, Scope.ALL),
            ("", Scope.ALL),
            ("monthly", Scope.ALL),
            ("WEEKLY", Scope.ALL),
            (" weekly", Scope.ALL),
            (42, Scope.ALL),
            (Scope.ALERTS, Scope.ALERTS),
        ],
    )
    def test_parse(self, raw, expected):
        assert Scope.parse(raw) is expected

    def test_each_scope_maps_to_one_flag(self):
        assert Scope.ALL.flag == "email_notifications"
        assert Scope.WEEKLY.flag == "weekly_digest"
        assert Scope.ALERTS.flag == "new_skill_alerts"

    def test_defaults_are_all_on(self):
        assert DEFAULT_PREFERENCES == ALL_ON


# ================================
# apply_scope
# ================================

@pytest.mark.asyncio
class TestApplyScope:
    """Scoped unsubscribe writes."""

    async def test_creates_record_with_default_matrix(
        self, db_session: AsyncSession, test_user: User, count_preferences
    ):
        prefs = await PreferenceStore(db_session).apply_scope(test_user.id, Scope.WEEKLY)
        await db_session.commit()

        assert prefs.flags() == {**ALL_ON, "weekly_digest": False}
        assert prefs.updated_at is not None
        assert await count_preferences(test_user.id) == 1

    @pytest.mark.parametrize("scope", list(Scope))
    async def test_scope_isolation(
        self, scope: Scope, db_session: AsyncSession, test_user: User
    ):
        """Only the scoped flag changes; the other three keep their stored values."""
        store = PreferenceStore(db_session)
        before = {
            "email_notifications": True,
            "weekly_digest": True,
            "new_skill_alerts": True,
            "pack_alerts": False,
        }
        await store.replace(test_user.id, before)
        await db_session.commit()

        prefs = await store.apply_scope(test_user.id, scope)
        await db_session.commit()

        assert prefs.flags() == {**before, scope.flag: False}

    async def test_idempotent(
        self, db_session: AsyncSession, test_user: User, count_preferences
    ):
        store = PreferenceStore(db_session)

        first = (await store.apply_scope(test_user.id, Scope.ALERTS)).flags()
        await db_session.commit()
        second = (await store.apply_scope(test_user.id, Scope.ALERTS)).flags()
        await db_session.commit()

        assert first == second == {**ALL_ON, "new_skill_alerts": False}
        assert await count_preferences(test_user.id) == 1

    async def test_does_not_re_enable_other_flags(
        self, db_session: AsyncSession, test_user: User
    ):
        store = PreferenceStore(db_session)
        await store.apply_scope(test_user.id, Scope.WEEKLY)
        prefs = await store.apply_scope(test_user.id, Scope.ALL)
        await db_session.commit()

        assert prefs.flags() == {**ALL_ON, "weekly_digest": False, "email_notifications": False}

    async def test_raw_unknown_scope_means_all(
        self, db_session: AsyncSession, test_user: User
    ):
        prefs = await PreferenceStore(db_session).apply_scope(test_user.id, "everything")
        await db_session.commit()

        assert prefs.flags() == {**ALL_ON, "email_notifications": False}

    async def test_updated_at_moves_forward(
        self, db_session: AsyncSession, test_user: User
    ):
        store = PreferenceStore(db_session)
        first = (await store.apply_scope(test_user.id, Scope.WEEKLY)).updated_at
        await db_session.commit()
        await asyncio.sleep(0.01)
        second = (await store.apply_scope(test_user.id, Scope.WEEKLY)).updated_at
        await db_session.commit()

        assert second > first

    async def test_other_users_untouched(
        self, db_session: AsyncSession, test_user: User, other_user: User, fetch_preferences
    ):
        store = PreferenceStore(db_session)
        await store.read_or_create(other_user.id)
        await store.apply_scope(test_user.id, Scope.ALL)
        await db_session.commit()

        other = await fetch_preferences(other_user.id)
        assert other.flags() == ALL_ON


# ================================
# read_or_create / replace
# ================================

@pytest.mark.asyncio
class TestReadAndReplace:
    """Dashboard read and full-replace paths."""

    async def test_read_creates_defaults(
        self, db_session: AsyncSession, test_user: User, count_preferences
    ):
        prefs = await PreferenceStore(db_session).read_or_create(test_user.id)
        await db_session.commit()

        assert prefs.flags() == ALL_ON
        assert await count_preferences(test_user.id) == 1

    async def test_read_never_modifies_existing(
        self, db_session: AsyncSession, test_user: User
    ):
        store = PreferenceStore(db_session)
        written = await store.apply_scope(test_user.id, Scope.WEEKLY)
        await db_session.commit()
        updated_at = written.updated_at

        prefs = await store.read_or_create(test_user.id)
        await db_session.commit()

        assert prefs.flags() == {**ALL_ON, "weekly_digest": False}
        assert prefs.updated_at == updated_at

    async def test_replace_round_trip(
        self, db_session: AsyncSession, test_user: User, fetch_preferences
    ):
        values = {
            "email_notifications": False,
            "weekly_digest": True,
            "new_skill_alerts": False,
            "pack_alerts": True,
        }
        await PreferenceStore(db_session).replace(test_user.id, values)
        await db_session.commit()

        stored = await fetch_preferences(test_user.id)
        assert stored.flags() == values

    async def test_replace_can_re_enable(
        self, db_session: AsyncSession, test_user: User
    ):
        store = PreferenceStore(db_session)
        await store.apply_scope(test_user.id, Scope.ALL)
        prefs = await store.replace(test_user.id, ALL_ON)
        await db_session.commit()

        assert prefs.flags() == ALL_ON

    @pytest.mark.parametrize(
        "values",
        [
            {"email_notifications": True, "weekly_digest": True, "new_skill_alerts": True},
            {**ALL_ON, "marketing": True},
            {**ALL_ON, "pack_alerts": 1},
            {**ALL_ON, "weekly_digest": "false"},
            {**ALL_ON, "email_notifications": None},
        ],
    )
    async def test_replace_rejects_invalid_values(
        self, values, db_session: AsyncSession, test_user: User, count_preferences
    ):
        with pytest.raises(InvalidPreferences):
            await PreferenceStore(db_session).replace(test_user.id, values)

        assert await count_preferences(test_user.id) == 0


class TestValidateFlags:
    """Flag validation without a database."""

    def test_returns_flags_in_canonical_order(self):
        values = {"pack_alerts": False, "weekly_digest": True, "new_skill_alerts": True, "email_notifications": False}
        assert list(validate_flags(values)) == list(ALL_ON)

    def test_rejects_non_mapping(self):
        with pytest.raises(InvalidPreferences):
            validate_flags([True, True, True, True])  # type: ignore[arg-type]


# ================================
# recipients_for
# ================================

@pytest.mark.asyncio
class TestRecipients:
    """Recipient selection for outgoing email."""

    async def test_selection(
        self,
        db_session: AsyncSession,
        test_user: User,
        other_user: User,
        inactive_user: User,
    ):
        store = PreferenceStore(db_session)
        # test_user: no row, defaults apply
        # other_user: weekly off
        await store.apply_scope(other_user.id, Scope.WEEKLY)
        await db_session.commit()

        weekly = await store.recipients_for("weekly_digest")
        alerts = await store.recipients_for("new_skill_alerts")

        assert [u.id for u in weekly] == [test_user.id]
        assert [u.id for u in alerts] == [test_user.id, other_user.id]

    async def test_master_switch_overrides_category(
        self, db_session: AsyncSession, test_user: User
    ):
        store = PreferenceStore(db_session)
        await store.apply_scope(test_user.id, Scope.ALL)
        await db_session.commit()

        for category in ("weekly_digest", "new_skill_alerts", "pack_alerts"):
            assert await store.recipients_for(category) == []

    async def test_unknown_category(self, db_session: AsyncSession):
        with pytest.raises(ValueError):
            await PreferenceStore(db_session).recipients_for("email_notifications")


# ================================
# Concurrency
# ================================

@pytest.mark.asyncio
class TestConcurrency:
    """Concurrent writers, each with its own session."""

    async def _apply(self, session_factory, user_id: int, scope: Scope):
        async with session_factory() as session:
            await PreferenceStore(session).apply_scope(user_id, scope)
            await session.commit()

    async def test_no_double_creation(
        self, session_factory, test_user: User, fetch_preferences, count_preferences
    ):
        await asyncio.gather(
            *(self._apply(session_factory, test_user.id, Scope.WEEKLY) for _ in range(10))
        )

        assert await count_preferences(test_user.id) == 1
        stored = await fetch_preferences(test_user.id)
        assert stored.flags() == {**ALL_ON, "weekly_digest": False}

    async def test_no_lost_update_between_scopes(
        self, session_factory, test_user: User, fetch_preferences, count_preferences
    ):
        await asyncio.gather(
            self._apply(session_factory, test_user.id, Scope.WEEKLY),
            self._apply(session_factory, test_user.id, Scope.ALERTS),
        )

        assert await count_preferences(test_user.id) == 1
        stored = await fetch_preferences(test_user.id)
        assert stored.flags() == {**ALL_ON, "weekly_digest": False, "new_skill_alerts": False}


# ================================
# Failures
# ================================

def _failing_session() -> MagicMock:
    session = MagicMock(spec=AsyncSession)
    session.get_bind.return_value.dialect.name = "sqlite"
    session.execute.side_effect = OperationalError(
        "INSERT INTO user_preferences ...", {}, Exception("database is locked")
    )
    return session


@pytest.mark.asyncio
class TestFailures:
    """Database errors become TransientStoreFailure after a rollback."""

    async def test_apply_scope_failure(self):
        session = _failing_session()

        with pytest.raises(TransientStoreFailure):
            await PreferenceStore(session).apply_scope(1, Scope.WEEKLY)

        session.rollback.assert_awaited_once()

    async def test_read_failure(self):
        session = _failing_session()

        with pytest.raises(TransientStoreFailure):
            await PreferenceStore(session).read_or_create(1)

        session.rollback.assert_awaited_once()

    async def test_recipients_failure(self):
        session = _failing_session()

        with pytest.raises(TransientStoreFailure):
            await PreferenceStore(session).recipients_for("weekly_digest")
