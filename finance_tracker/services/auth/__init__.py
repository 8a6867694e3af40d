"""Authentication and session services."""

from finance_tracker.services.auth.session import AuthError, SessionContext
from finance_tracker.services.auth.provider import (
    AuthProviderInterface,
    DocumentStoreAuthProvider,
)

__all__ = [
    "AuthError",
    "AuthProviderInterface",
    "DocumentStoreAuthProvider",
    "SessionContext",
]
