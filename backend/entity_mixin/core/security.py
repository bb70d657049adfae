"""
JWT helpers carrying caller permission tags.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

from jose import JWTError, jwt

from entity_mixin.config import get_settings

WILDCARD = "*"


def create_access_token(
    subject: str,
    permissions: list[str],
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        subject: Caller identifier (user or service name)
        permissions: Granted permission tags, e.g. ["accounts.create"]
        expires_delta: Optional custom expiration time (default 30 minutes)

    Returns:
        Encoded JWT token string
    """
    settings = get_settings()

    if expires_delta is None:
        expires_delta = timedelta(minutes=30)

    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "permissions": permissions,
        "exp": now + expires_delta,
        "iat": now,
    }

    return jwt.encode(
        payload,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def decode_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a JWT token.

    Raises:
        JWTError: If token is invalid or expired
    """
    settings = get_settings()
    return jwt.decode(
        token,
        settings.jwt_secret_key,
        algorithms=[settings.jwt_algorithm],
    )


def permission_granted(granted: Iterable[str], tag: str) -> bool:
    """
    Check a permission tag against granted tags.

    Supports the global wildcard "*" and prefix wildcards like "accounts.*".
    """
    for item in granted:
        if item == WILDCARD or item == tag:
            return True
        if item.endswith(".*") and tag.startswith(item[:-1]):
            return True
    return False


__all__ = ["JWTError", "create_access_token", "decode_token", "permission_granted"]
