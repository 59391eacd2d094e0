"""
Caller identity for requests.

Provides:
- UserRole / UserContext: The verified caller the core operates for
- get_user_context: FastAPI dependency reading the identity headers
- require_admin: FastAPI dependency restricting a route to administrators

Token verification happens upstream: the gateway in front of the API sets
``X-User-Id`` and ``X-User-Role`` after verifying the caller, and the
service layer trusts them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from cheerboard.utils.logging_config import get_logger


logger = get_logger("api")

USER_ID_HEADER = "X-User-Id"
USER_ROLE_HEADER = "X-User-Role"


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


@dataclass(frozen=True)
class UserContext:
    """
    The verified caller of a request.

    Attributes:
        user_id: Stable user identifier from the auth provider
        role: user or admin

    Usage:
        @router.post("/performers")
        async def create_performer(
            ctx: UserContext = Depends(get_user_context)
        ):
            ...
    """

    user_id: str
    role: UserRole = UserRole.USER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def owns(self, created_by: Optional[str]) -> bool:
        """Check if the caller created a record."""
        return created_by is not None and created_by == self.user_id


def get_optional_user_context(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
    x_user_role: Optional[str] = Header(default=None, alias=USER_ROLE_HEADER),
) -> Optional[UserContext]:
    """
    Build the caller context for routes that also serve anonymous readers.

    Returns:
        UserContext, or None when no user id header is present

    Raises:
        HTTPException: 401 if the role header names an unknown role
    """
    if not x_user_id or not x_user_id.strip():
        return None

    role_value = (x_user_role or UserRole.USER.value).strip().lower()
    try:
        role = UserRole(role_value)
    except ValueError:
        logger.warning(f"Rejected unknown role header '{role_value}' for user {x_user_id}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Unknown role '{role_value}'",
        )
    return UserContext(user_id=x_user_id.strip(), role=role)


def get_user_context(
    ctx: Optional[UserContext] = Depends(get_optional_user_context),
) -> UserContext:
    """
    Require an authenticated caller.

    Raises:
        HTTPException: 401 if the identity headers are missing
    """
    if ctx is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return ctx


def require_admin(ctx: UserContext = Depends(get_user_context)) -> UserContext:
    """
    Require an administrator.

    Raises:
        HTTPException: 403 for non-admin callers
    """
    if not ctx.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator role required",
        )
    return ctx
