"""
Shared entity schema: fields, scopes and the action table.

Every entity collection stores the same base fields. Concrete services can
append their own fields (for example foreign keys) on top of these.
"""
import time
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def now_ms() -> int:
    """Current wall clock time in milliseconds."""
    return int(time.time() * 1000)


class FieldType(str, Enum):
    """Value types a field may hold."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"


class FieldSpec(BaseModel):
    """Definition of one entity field."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="External field name")
    type: FieldType = Field(..., description="Value type")
    column: Optional[str] = Field(None, description="Stored name when it differs from name")
    primary_key: bool = False
    secure: bool = Field(False, description="Value is obfuscated with the id codec")
    readonly: bool = Field(False, description="Callers cannot set the value")
    required: bool = Field(False, description="Must be given on create")
    hidden: bool = Field(False, description="Left out of responses unless requested")
    on_create: bool = Field(False, description="Stamped with the current time on create")
    on_update: bool = Field(False, description="Stamped with the current time on update")
    on_remove: bool = Field(False, description="Stamped with the current time on remove")

    @property
    def column_name(self) -> str:
        return self.column or self.name


ENTITY_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec(name="id", type=FieldType.STRING, column="_id", primary_key=True, secure=True),
    FieldSpec(name="options", type=FieldType.OBJECT),
    FieldSpec(name="createdAt", type=FieldType.NUMBER, readonly=True, on_create=True),
    FieldSpec(name="updatedAt", type=FieldType.NUMBER, readonly=True, on_update=True),
    FieldSpec(
        name="deletedAt",
        type=FieldType.NUMBER,
        readonly=True,
        hidden=True,
        on_remove=True,
    ),
)

# Soft-deleted rows carry a deletedAt stamp; {"deletedAt": None} also matches
# documents without the field.
NOT_DELETED_SCOPE = "notDeleted"
ENTITY_SCOPES: dict[str, dict] = {
    NOT_DELETED_SCOPE: {"deletedAt": None},
}
DEFAULT_SCOPES: tuple[str, ...] = (NOT_DELETED_SCOPE,)


class EntityAction(str, Enum):
    """Actions every entity service exposes."""
    CREATE = "create"
    LIST = "list"
    FIND = "find"
    COUNT = "count"
    GET = "get"
    UPDATE = "update"
    REMOVE = "remove"


# Full overwrite is never offered.
DISABLED_ACTIONS = frozenset({"replace"})


class ActionDefinition(BaseModel):
    """How an action is exposed and guarded."""
    model_config = ConfigDict(frozen=True)

    action: EntityAction
    method: str = Field(..., description="HTTP method of the REST route")
    path: str = Field(..., description="REST path below the collection prefix")
    status_code: int = 200
    resolves_entity: bool = Field(
        False,
        description="Target entity is looked up before the handler runs",
    )


ACTION_TABLE: dict[EntityAction, ActionDefinition] = {
    EntityAction.CREATE: ActionDefinition(
        action=EntityAction.CREATE, method="POST", path="", status_code=201
    ),
    EntityAction.LIST: ActionDefinition(action=EntityAction.LIST, method="GET", path=""),
    EntityAction.FIND: ActionDefinition(action=EntityAction.FIND, method="GET", path="/find"),
    EntityAction.COUNT: ActionDefinition(action=EntityAction.COUNT, method="GET", path="/count"),
    EntityAction.GET: ActionDefinition(
        action=EntityAction.GET, method="GET", path="/{id}", resolves_entity=True
    ),
    EntityAction.UPDATE: ActionDefinition(
        action=EntityAction.UPDATE, method="PATCH", path="/{id}", resolves_entity=True
    ),
    EntityAction.REMOVE: ActionDefinition(
        action=EntityAction.REMOVE, method="DELETE", path="/{id}", resolves_entity=True
    ),
}


def permission_tag(prefix: str, action: EntityAction) -> str:
    """Permission tag guarding an action, e.g. "accounts.create"."""
    return f"{prefix}.{action.value}"
