"""
Request and response schemas for entity actions.
"""
from entity_mixin.schemas.entity import (
    CountParams,
    EntityListResponse,
    EntityRemoveResponse,
    EntityResponse,
    FindParams,
    GetParams,
    ListParams,
    QueryParams,
)

__all__ = [
    "CountParams",
    "EntityListResponse",
    "EntityRemoveResponse",
    "EntityResponse",
    "FindParams",
    "GetParams",
    "ListParams",
    "QueryParams",
]
