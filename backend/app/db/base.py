"""
Database Base Classes and Common Utilities

This module provides the foundation for all database models in the application.

Key Concepts:
--------------
1. DeclarativeBase: SQLAlchemy's base class that enables ORM functionality
2. CommonTableAttributes: Shared columns/methods used across all models
3. orm_registry: Central registry that tracks all models and their metadata

Learning Resources:
- SQLAlchemy Declarative Base: https://docs.sqlalchemy.org/en/20/orm/declarative_config.html
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, MetaData, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, registry


def utcnow() -> datetime:
    """Timezone-aware current time in UTC. Used for every timestamp column."""
    return datetime.now(timezone.utc)


# ================================
# Naming Convention for Constraints
# ================================
# Consistent constraint names keep Alembic autogenerate stable.
# The upsert in the preference store targets the user_id column, not the
# constraint name, so renaming here is safe.
#
# Format examples:
# - uq_user_preferences_user_id: Unique constraint on user_preferences.user_id
# - fk_user_preferences_user_id_users: Foreign key to users
convention = {
    "ix": "ix_%(column_0_label)s",  # Index
    "uq": "uq_%(table_name)s_%(column_0_name)s",  # Unique constraint
    "ck": "ck_%(table_name)s_%(constraint_name)s",  # Check constraint
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",  # Foreign key
    "pk": "pk_%(table_name)s",  # Primary key
}

metadata = MetaData(naming_convention=convention)

orm_registry = registry(metadata=metadata)


# ================================
# Base DeclarativeBase Class
# ================================
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Usage:
        class User(Base):
            __tablename__ = "users"
            id: Mapped[int] = mapped_column(primary_key=True)
    """

    registry = orm_registry
    metadata = metadata

    __tablename__: str


# ================================
# Common Table Attributes Mixin
# ================================
class CommonTableAttributes:
    """
    Mixin that provides common fields and methods to all models.

    Common Fields Added:
    --------------------
    - id: Primary key (auto-incrementing integer)
    - created_at: When the record was created (set once, never changes)
    - updated_at: When the record was last modified

    Note on updated_at:
    -------------------
    ``onupdate`` only fires for ORM flushes and plain UPDATE statements.
    Upserts (INSERT ... ON CONFLICT DO UPDATE) ignore it, so every upsert
    must set updated_at explicitly in its SET clause.
    """

    id: Mapped[int] = mapped_column(
        primary_key=True,
        autoincrement=True,
        comment="Auto-incrementing primary key"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        comment="Timestamp when record was created (UTC)"
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
        comment="Timestamp when record was last updated (UTC)"
    )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id})"


# ================================
# Convenient Base Model
# ================================
class BaseModel(Base, CommonTableAttributes):
    """
    Ready-to-use base class for all application models.

    Every model automatically gets id, created_at and updated_at.
    """

    __abstract__ = True


# ================================
# String Length Constraints
# ================================
String100 = String(100)  # Example: username, display name
String255 = String(255)  # Example: email, URLs
