"""
API routes initialization.

This module aggregates all API routers and provides a single router
to include in the main application.
"""

from fastapi import APIRouter

from app.api.routes import preferences, unsubscribe

# Create main API router
api_router = APIRouter()

# Public unsubscribe link target
api_router.include_router(unsubscribe.router)

# Dashboard preference settings
api_router.include_router(preferences.router)
