"""
Entity schema definitions shared by all entity services.
"""
from entity_mixin.models.entity import (
    ACTION_TABLE,
    DEFAULT_SCOPES,
    DISABLED_ACTIONS,
    ENTITY_FIELDS,
    ENTITY_SCOPES,
    NOT_DELETED_SCOPE,
    ActionDefinition,
    EntityAction,
    FieldSpec,
    FieldType,
    now_ms,
    permission_tag,
)

__all__ = [
    "ACTION_TABLE",
    "DEFAULT_SCOPES",
    "DISABLED_ACTIONS",
    "ENTITY_FIELDS",
    "ENTITY_SCOPES",
    "NOT_DELETED_SCOPE",
    "ActionDefinition",
    "EntityAction",
    "FieldSpec",
    "FieldType",
    "now_ms",
    "permission_tag",
]
