"""
Middleware components for Cheerboard.

This module provides:
- UserContext: Dataclass representing the verified caller
- get_user_context: FastAPI dependency requiring an authenticated caller
- require_admin: FastAPI dependency requiring the admin role
"""

from cheerboard.middleware.auth import (
    UserContext,
    UserRole,
    get_optional_user_context,
    get_user_context,
    require_admin,
)

__all__ = [
    "UserContext",
    "UserRole",
    "get_optional_user_context",
    "get_user_context",
    "require_admin",
]
