"""
Core module - Id codec, errors, security and logging utilities.
"""
from entity_mixin.core.codec import INVALID_ID, IdCodec
from entity_mixin.core.errors import (
    ActionNotFoundError,
    AuthenticationError,
    ConfigurationError,
    EntityNotFoundError,
    EntityServiceError,
    EntityValidationError,
    PermissionDeniedError,
    ServiceStartupError,
    StorageCorruptionError,
)
from entity_mixin.core.security import (
    create_access_token,
    decode_token,
    permission_granted,
)

__all__ = [
    "INVALID_ID",
    "IdCodec",
    "ActionNotFoundError",
    "AuthenticationError",
    "ConfigurationError",
    "EntityNotFoundError",
    "EntityServiceError",
    "EntityValidationError",
    "PermissionDeniedError",
    "ServiceStartupError",
    "StorageCorruptionError",
    "create_access_token",
    "decode_token",
    "permission_granted",
]
