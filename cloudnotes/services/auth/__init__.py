"""Public API for the identity provider service."""

from .models import AuthEvent, AuthTokens
from .service import AuthHub, AuthService

__all__ = ["AuthService", "AuthHub", "AuthEvent", "AuthTokens"]
