"""Business logic services."""

from app.services.preference_store import PreferenceStore, Scope, TransientStoreFailure
from app.services.unsubscribe import UnsubscribeError, UnsubscribeHandler

__all__ = [
    "PreferenceStore",
    "Scope",
    "TransientStoreFailure",
    "UnsubscribeError",
    "UnsubscribeHandler",
]
