"""
User and preferences model tests.
"""

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import PREFERENCE_FLAGS, User, UserPreferences


@pytest.mark.asyncio
class TestUserPreferencesModel:
    """Column defaults and the one-row-per-user constraint."""

    async def test_defaults_all_on(self, db_session: AsyncSession, test_user: User):
        prefs = UserPreferences(user_id=test_user.id)
        db_session.add(prefs)
        await db_session.commit()

        assert prefs.flags() == {flag: True for flag in PREFERENCE_FLAGS}
        assert prefs.created_at is not None
        assert prefs.updated_at is not None

    async def test_one_row_per_user(self, db_session: AsyncSession, test_user: User):
        db_session.add(UserPreferences(user_id=test_user.id))
        await db_session.commit()

        db_session.add(UserPreferences(user_id=test_user.id))
        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()

    async def test_email_is_unique(self, db_session: AsyncSession, test_user: User):
        db_session.add(User(email=test_user.email, username="someone-else"))
        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()


def test_repr_shows_flags():
    prefs = UserPreferences(
        id=1,
        user_id=2,
        email_notifications=True,
        weekly_digest=False,
        new_skill_alerts=True,
        pack_alerts=True,
    )
    assert "user_id=2" in repr(prefs)
    assert "'weekly_digest': False" in repr(prefs)
