"""
API route modules.

Import all route modules here for easy access.
"""

from app.api.routes import preferences, unsubscribe

__all__ = ["preferences", "unsubscribe"]
