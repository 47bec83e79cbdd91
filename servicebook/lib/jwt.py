"""JWT token validation utilities.

Tokens are issued by the identity provider and signed with the shared secret
from settings. They carry the standard claims (exp, iat, sub) plus a custom
user_type claim (customer, professional, admin).
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from jwt.exceptions import InvalidTokenError

from servicebook.lib.settings import settings


def create_access_token(
    user_id: str,
    user_type: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a JWT access token for a user.

    Used by tests and local tooling; production tokens come from the
    identity provider with the same claims.

    Args:
        user_id: UUID of the user (stored in 'sub' claim)
        user_type: Type of user (customer, professional, admin)
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.jwt_expiration_minutes)

    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "user_type": user_type,
        "iat": now,
        "exp": now + expires_delta,
    }

    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict:
    """Verify and decode a JWT token.

    Args:
        token: JWT token string to verify

    Returns:
        Decoded token payload with claims

    Raises:
        InvalidTokenError: If token is invalid, expired, or signature doesn't match
    """
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
    )


def get_user_from_token(token: str) -> tuple[str, str]:
    """Extract user_id and user_type from a token.

    Raises:
        InvalidTokenError: If token is invalid or required claims are missing
    """
    payload = verify_token(token)
    try:
        return payload["sub"], payload["user_type"]
    except KeyError as e:
        raise InvalidTokenError(f"Missing claim: {e.args[0]}") from e
