"""
API dependencies for FastAPI dependency injection.

Provides database sessions, the authenticated user and role checks.
"""
from typing import Callable
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jwt.exceptions import InvalidTokenError
from sqlalchemy.orm import Session

from servicebook.api.middleware.error_handler import (
    ForbiddenException,
    UnauthorizedException,
)
from servicebook.lib.db import get_db as get_db_session
from servicebook.lib.jwt import get_user_from_token
from servicebook.lib.logging import get_logger
from servicebook.models.users import User, UserType


logger = get_logger(__name__)


# Re-export get_db for convenience
get_db = get_db_session


# HTTP Bearer token security scheme; missing header handled below as 401
security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Dependency to get current authenticated user from JWT token.

    Args:
        credentials: Bearer token from Authorization header
        db: Database session

    Returns:
        Authenticated, active user

    Raises:
        UnauthorizedException: token missing or invalid, user unknown or inactive
    """
    if credentials is None:
        raise UnauthorizedException("Authentication required")

    try:
        user_id, _ = get_user_from_token(credentials.credentials)
        user_uuid = UUID(user_id)
    except (InvalidTokenError, ValueError) as e:
        logger.warning(f"Rejected token: {e}")
        raise UnauthorizedException("Invalid authentication token") from e

    user = db.get(User, user_uuid)
    if user is None or not user.is_active:
        raise UnauthorizedException("User not found")

    return user


def require_role(*roles: UserType) -> Callable[..., User]:
    """
    Build a dependency that only lets users of the given types through.

    Example:
        @router.post("")
        def create(user: User = Depends(require_role(UserType.CUSTOMER))):
            ...
    """
    def dependency(user: User = Depends(get_current_user)) -> User:
        if user.type not in roles:
            allowed = ", ".join(r.value for r in roles)
            raise ForbiddenException(f"Requires one of the roles: {allowed}")
        return user

    return dependency
