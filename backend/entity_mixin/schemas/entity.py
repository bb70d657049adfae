"""
Entity action parameter and response schemas.
"""
import json
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _split_csv(value: Any) -> Any:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class QueryParams(BaseModel):
    """Parameters shared by read actions."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    query: Optional[dict[str, Any]] = Field(None, description="Mongo-style filter")
    scope: Union[bool, str, list[str], None] = Field(
        None,
        description="False disables default scopes; names add scopes, '-name' drops one",
    )
    fields: Optional[list[str]] = Field(None, description="Fields to return")
    sort: Optional[list[str]] = Field(None, description="Sort fields, '-' prefix for descending")

    @field_validator("query", mode="before")
    @classmethod
    def parse_query(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return json.loads(value)
            except json.JSONDecodeError as e:
                raise ValueError(f"query is not valid JSON: {e.msg}")
        return value

    @field_validator("fields", "sort", mode="before")
    @classmethod
    def parse_csv(cls, value: Any) -> Any:
        return _split_csv(value)


class CountParams(QueryParams):
    """Parameters of the count action."""


class FindParams(QueryParams):
    """Parameters of the find action."""
    limit: Optional[int] = Field(None, ge=0, description="Max number of rows")
    offset: int = Field(0, ge=0, description="Rows to skip")


class ListParams(QueryParams):
    """Parameters of the paginated list action."""
    page: int = Field(1, ge=1, description="Page number, starting at 1")
    page_size: int = Field(10, ge=1, le=100, alias="pageSize", description="Rows per page")


class GetParams(BaseModel):
    """Parameters of actions addressing one entity."""
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1, description="Encoded entity id")
    scope: Union[bool, str, list[str], None] = None
    fields: Optional[list[str]] = None

    @field_validator("fields", mode="before")
    @classmethod
    def parse_csv(cls, value: Any) -> Any:
        return _split_csv(value)


class EntityResponse(BaseModel):
    """Entity as returned to callers."""
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = Field(None, description="Encoded entity id, absent when not selected in fields")
    options: Optional[dict[str, Any]] = Field(None, description="Free-form payload")
    createdAt: Optional[int] = Field(None, description="Creation time in ms")
    updatedAt: Optional[int] = Field(None, description="Last update time in ms")
    deletedAt: Optional[int] = Field(None, description="Soft delete time in ms")


class EntityListResponse(BaseModel):
    """One page of entities."""
    model_config = ConfigDict(populate_by_name=True)

    rows: list[EntityResponse] = Field(default=[], description="Entities on this page")
    total: int = Field(..., description="Entities matching the query")
    page: int = Field(..., description="Current page")
    page_size: int = Field(..., alias="pageSize", description="Rows per page")
    total_pages: int = Field(..., alias="totalPages", description="Number of pages")


class EntityRemoveResponse(BaseModel):
    """Result of a soft delete."""
    id: str = Field(..., description="Encoded id of the removed entity")
