"""
Error types raised by entity services.

Client-facing errors carry an HTTP status code, a machine readable type and
optional diagnostic data. The API layer renders them; internal callers can
catch them directly.
"""
from typing import Any, Optional

from fastapi import status


class EntityServiceError(Exception):
    """Base class for errors surfaced to callers of an entity service."""

    code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    type: str = "SERVICE_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        type: Optional[str] = None,
        data: Any = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if type is not None:
            self.type = type
        self.data = data

    def to_dict(self) -> dict[str, Any]:
        """Response body for the API layer."""
        return {"detail": self.message, "type": self.type, "data": self.data}


class PermissionDeniedError(EntityServiceError):
    """Caller lacks a permission tag or references an entity it cannot see."""

    code = status.HTTP_403_FORBIDDEN
    type = "ERR_NO_PERMISSION"


class EntityValidationError(EntityServiceError):
    """Request parameters failed validation.

    ``data`` is a list of ``{"type", "field", ...}`` items, one per problem.
    """

    code = 422
    type = "VALIDATION_ERROR"

    @classmethod
    def required(cls, field: str) -> "EntityValidationError":
        return cls(f"{field} is required", data=[{"type": "required", "field": field}])


class EntityNotFoundError(EntityServiceError):
    """No live entity matches the given id."""

    code = status.HTTP_404_NOT_FOUND
    type = "ENTITY_NOT_FOUND"

    def __init__(self, entity_id: Any):
        super().__init__(f"Entity '{entity_id}' not found", data={"id": entity_id})


class ActionNotFoundError(EntityServiceError):
    """Unknown or disabled action."""

    code = status.HTTP_404_NOT_FOUND
    type = "ACTION_NOT_FOUND"

    def __init__(self, action_name: str):
        super().__init__(f"Action '{action_name}' is not available", data={"action": action_name})


class AuthenticationError(EntityServiceError):
    """Missing or invalid caller credentials."""

    code = status.HTTP_401_UNAUTHORIZED
    type = "ERR_INVALID_TOKEN"


class ConfigurationError(RuntimeError):
    """Required configuration is missing or invalid."""


class ServiceStartupError(RuntimeError):
    """A service cannot be created or started. Not recoverable at runtime."""


class StorageCorruptionError(RuntimeError):
    """A local data file holds more corrupt records than tolerated."""
