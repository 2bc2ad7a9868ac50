"""
User Models

This module contains the User and UserPreferences models.

Models Included:
----------------
1. User - Identity anchor for notification consent
2. UserPreferences - The four email consent flags for one user

Database Tables:
----------------
- users: Account identity (provisioned by the sign-up flow, read-only here)
- user_preferences: Notification flags (1-to-1 with users, created lazily)

Learning Resources:
-------------------
- SQLAlchemy Relationships: https://docs.sqlalchemy.org/en/20/orm/basic_relationships.html
- PostgreSQL ON CONFLICT: https://www.postgresql.org/docs/current/sql-insert.html#SQL-ON-CONFLICT
"""

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import BaseModel, String100, String255


# The four consent flags, in display order. Every preferences row has all of
# them; writes that replace the record must supply all of them.
PREFERENCE_FLAGS: tuple[str, ...] = (
    "email_notifications",
    "weekly_digest",
    "new_skill_alerts",
    "pack_alerts",
)


# ================================
# User Model
# ================================

class User(BaseModel):
    """
    User account model.

    The identity that notification consent hangs off. Rows are created when
    an account is provisioned (sign-up webhook) and are never mutated or
    deleted by the consent code; deleting a user cascades to preferences.

    Table: users
    ------------
    Inherits from BaseModel, which automatically provides:
    - id (int, primary key, auto-increment)
    - created_at (datetime, UTC, set on creation)
    - updated_at (datetime, UTC, updates automatically)

    Relationships:
    --------------
    - preferences (1-to-1, optional): Email consent flags
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String255,
        unique=True,
        index=True,
        nullable=False,
        comment="User's email address. Must be unique."
    )
    # Indexed: the dashboard resolves the session subject (email) to a user

    username: Mapped[str] = mapped_column(
        String100,
        unique=True,
        nullable=False,
        comment="Public handle"
    )

    name: Mapped[str] = mapped_column(
        String100,
        nullable=False,
        default="",
        comment="Display name"
    )

    avatar: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
        comment="Avatar image URL"
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Disabled accounts cannot use the dashboard"
    )

    preferences: Mapped[Optional["UserPreferences"]] = relationship(
        "UserPreferences",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    # uselist=False: at most one preferences row per user (1-to-1)
    # passive_deletes=True: let ON DELETE CASCADE in the database do the work

    def __repr__(self) -> str:
        return f"User(id={self.id}, email={self.email})"


# ================================
# UserPreferences Model
# ================================

class UserPreferences(BaseModel):
    """
    Email notification consent for one user.

    Table: user_preferences
    -----------------------
    At most one row per user, enforced by the UNIQUE constraint on user_id.
    That constraint is also the conflict target for every write: the
    preference store never checks-then-inserts, it upserts.

    Flags:
    ------
    - email_notifications: Master switch. False means "send me nothing".
    - weekly_digest: Weekly top-skills digest
    - new_skill_alerts: Alerts when new skills are published
    - pack_alerts: Alerts for new skill packs (dashboard only, no email scope)

    Default Matrix:
    ---------------
    A row created lazily (first unsubscribe, first dashboard read) starts with
    all four flags True, then has the requested override applied in the same
    statement. updated_at doubles as the last-modified timestamp.
    """

    __tablename__ = "user_preferences"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        comment="Foreign key to users table"
    )
    # unique=True: one preferences record per user, enforced by PostgreSQL
    # ondelete="CASCADE": user deletion removes the record (external flow)

    email_notifications: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
        comment="Master switch for all email notifications"
    )

    weekly_digest: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
        comment="Weekly digest emails"
    )

    new_skill_alerts: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
        comment="New skill alert emails"
    )

    pack_alerts: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
        comment="Skill pack alert emails"
    )

    user: Mapped["User"] = relationship(
        "User",
        back_populates="preferences",
    )

    def flags(self) -> dict[str, bool]:
        """Return the four consent flags as a plain dict."""
        return {flag: getattr(self, flag) for flag in PREFERENCE_FLAGS}

    def __repr__(self) -> str:
        return (
            f"UserPreferences(id={self.id}, user_id={self.user_id}, "
            f"flags={self.flags()})"
        )
