"""
Pydantic schemas for request/response validation.

Import all schemas here for easy access.
"""

from app.schemas.preferences import (
    ErrorResponse,
    PreferencesResponse,
    PreferencesUpdate,
    UnsubscribeRequest,
    UnsubscribeResponse,
)

__all__ = [
    # Unsubscribe
    "UnsubscribeRequest",
    "UnsubscribeResponse",
    # Dashboard preferences
    "PreferencesResponse",
    "PreferencesUpdate",
    # Errors
    "ErrorResponse",
]
