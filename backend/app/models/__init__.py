"""
Database Models

This module contains all SQLAlchemy ORM models for the application.

Import models from this module to ensure they're registered with SQLAlchemy:

    from app.models import User, UserPreferences

This ensures that:
1. Alembic can detect all models for migrations
2. Relationships work correctly
3. All models are available throughout the app
"""

from app.models.user import (
    PREFERENCE_FLAGS,
    User,
    UserPreferences,
)

__all__ = [
    "PREFERENCE_FLAGS",
    "User",
    "UserPreferences",
]
