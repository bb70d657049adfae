"""
Authentication dependencies for route protection.
"""
from typing import Annotated

from fastapi import Depends, HTTPException, Query, Request, status
from jose import JWTError

from entity_mixin.core.security import decode_token
from entity_mixin.services.broker import ServiceBroker


async def get_caller_meta(
    token: Annotated[str, Query(description="JWT access token")]
) -> dict:
    """
    Dependency building the caller metadata from a JWT token.

    Token is passed as query parameter: ?token=xxx

    Raises:
        HTTPException 401: If token is invalid, expired or has no subject
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_token(token)
    except JWTError:
        raise credentials_exception

    subject = payload.get("sub")
    if subject is None:
        raise credentials_exception

    permissions = payload.get("permissions") or []
    if not isinstance(permissions, list):
        raise credentials_exception

    return {"caller": subject, "permissions": [str(p) for p in permissions]}


def get_broker(request: Request) -> ServiceBroker:
    """Dependency returning the application's service broker."""
    return request.app.state.broker


# Type aliases for cleaner route signatures
CallerMeta = Annotated[dict, Depends(get_caller_meta)]
Broker = Annotated[ServiceBroker, Depends(get_broker)]
