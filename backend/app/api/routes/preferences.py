"""
Notification preference endpoints for the signed-in dashboard.

This module provides:
- Read current email preferences (created with defaults on first read)
- Replace all four flags at once

Both routes require a valid session token (see app.core.auth).
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.core.auth import get_current_active_user
from app.core.logging import get_logger
from app.db.deps import DBSession
from app.models.user import User
from app.schemas.preferences import ErrorResponse, PreferencesResponse, PreferencesUpdate
from app.services.preference_store import PreferenceStore, TransientStoreFailure

# Setup logger
logger = get_logger(__name__)

# Create router
router = APIRouter(prefix="/user", tags=["preferences"])


def _store_error(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": message},
    )


@router.get(
    "/preferences",
    response_model=PreferencesResponse,
    summary="Get email notification preferences",
    responses={
        401: {"description": "Not signed in"},
        500: {"model": ErrorResponse, "description": "Storage failure"},
    },
)
async def get_preferences(
    db: DBSession,
    current_user: User = Depends(get_current_active_user),
):
    """
    Return the user's preferences.

    A user who has never changed anything gets the default matrix (all on),
    and the record is persisted so updatedAt is stable from then on.
    """
    store = PreferenceStore(db)
    try:
        prefs = await store.read_or_create(current_user.id)
        await db.commit()
    except (TransientStoreFailure, SQLAlchemyError):
        return _store_error("Failed to fetch preferences")

    return PreferencesResponse.model_validate(prefs)


@router.patch(
    "/preferences",
    response_model=PreferencesResponse,
    summary="Replace email notification preferences",
    responses={
        401: {"description": "Not signed in"},
        422: {"description": "Missing flag or non-boolean value"},
        500: {"model": ErrorResponse, "description": "Storage failure"},
    },
)
async def update_preferences(
    update: PreferencesUpdate,
    db: DBSession,
    current_user: User = Depends(get_current_active_user),
):
    """
    Overwrite all four flags.

    Example request:
        PATCH /api/v1/user/preferences
        {
            "emailNotifications": true,
            "weeklyDigest": false,
            "newSkillAlerts": true,
            "packAlerts": false
        }
    """
    store = PreferenceStore(db)
    try:
        prefs = await store.replace(current_user.id, update.model_dump())
        await db.commit()
    except (TransientStoreFailure, SQLAlchemyError):
        return _store_error("Failed to update preferences")

    logger.info("preferences_updated", user_id=current_user.id)
    return PreferencesResponse.model_validate(prefs)
