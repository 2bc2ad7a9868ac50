"""
Unsubscribe endpoint.

This module provides:
- One-click unsubscribe from the link in an email footer

The caller is anonymous; the signed token in the request body is the only
proof of identity. Failures are raised as UnsubscribeError and rendered by
the application exception handler (see app.main) as ``{"error": message}``.

Request Flow:
-------------
Email footer link → /unsubscribe?token=...&type=weekly (web page)
→ POST /api/v1/unsubscribe {"token": "...", "type": "weekly"} (this route)
"""

from fastapi import APIRouter, Depends

from app.core.config import settings
from app.core.rate_limit import rate_limit
from app.db.deps import DBSession
from app.schemas.preferences import ErrorResponse, UnsubscribeRequest, UnsubscribeResponse
from app.services.unsubscribe import UnsubscribeHandler

# Create router
router = APIRouter(tags=["notifications"])


@router.post(
    "/unsubscribe",
    response_model=UnsubscribeResponse,
    summary="Unsubscribe from email notifications",
    description=(
        "Verify a signed unsubscribe token and turn off one category of email "
        "(weekly digest, new skill alerts) or all email. Idempotent."
    ),
    responses={
        200: {"description": "Preference updated (or already off)"},
        400: {"model": ErrorResponse, "description": "Missing, invalid or expired token"},
        404: {"model": ErrorResponse, "description": "User no longer exists"},
        429: {"description": "Too many requests from this client"},
        500: {"model": ErrorResponse, "description": "Storage failure, safe to retry"},
    },
    dependencies=[
        Depends(rate_limit(
            settings.RATE_LIMIT_UNSUBSCRIBE_PER_MINUTE,
            window_seconds=60,
            key_prefix="unsubscribe",
        ))
    ],
)
async def unsubscribe(
    request: UnsubscribeRequest,
    db: DBSession,
):
    """
    Apply an unsubscribe request.

    Repeating the same request is harmless: the flag is already off and the
    response is the same 200.
    """
    handler = UnsubscribeHandler(db)
    await handler.unsubscribe(request.token, request.type)
    return UnsubscribeResponse(success=True)
