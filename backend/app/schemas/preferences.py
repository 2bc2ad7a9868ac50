"""
Notification preference schemas (Pydantic models for request/response).

Two audiences:
- The unsubscribe link (anonymous, token-authenticated)
- The dashboard settings page (session-authenticated, camelCase JSON)

References:
-----------
- Pydantic aliases: https://docs.pydantic.dev/latest/concepts/alias/
- Strict types: https://docs.pydantic.dev/latest/concepts/strict_mode/
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool
from pydantic.alias_generators import to_camel


# ================================
# Unsubscribe
# ================================

class UnsubscribeRequest(BaseModel):
    """
    Unsubscribe request sent by the landing page behind an email link.

    Both fields accept any JSON value. A missing or non-string token is a
    domain error (400 "Token is required"), not a validation error, and a
    type that is not a known scope, string or not, is treated as "all".

    Example request:
        POST /api/v1/unsubscribe
        {
            "token": "MTIzOjE3MDAwMDAwMDAwMDA.q3Jx...",
            "type": "weekly"
        }
    """
    token: Any = Field(
        None,
        description="Signed unsubscribe token from the email link",
    )
    type: Any = Field(
        None,
        description="Category to revoke: all, weekly or alerts (default all)",
        examples=["weekly"],
    )


class UnsubscribeResponse(BaseModel):
    success: bool = True


class ErrorResponse(BaseModel):
    """Error body used by every notification endpoint."""
    error: str = Field(..., examples=["Invalid or expired unsubscribe token"])


# ================================
# Dashboard Preferences
# ================================

class PreferenceFlags(BaseModel):
    """Base for the four flags, serialized in camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class PreferencesResponse(PreferenceFlags):
    """
    Current preferences for the signed-in user.

    Example response:
        {
            "emailNotifications": true,
            "weeklyDigest": false,
            "newSkillAlerts": true,
            "packAlerts": true,
            "updatedAt": "2024-01-01T12:00:00Z"
        }
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    email_notifications: bool
    weekly_digest: bool
    new_skill_alerts: bool
    pack_alerts: bool
    updated_at: datetime


class PreferencesUpdate(PreferenceFlags):
    """
    Full replacement of the four flags.

    Every flag is required and must be a JSON boolean; ``1`` or ``"true"``
    are rejected with 422 rather than coerced. Unknown keys are rejected too.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    email_notifications: StrictBool
    weekly_digest: StrictBool
    new_skill_alerts: StrictBool
    pack_alerts: StrictBool
