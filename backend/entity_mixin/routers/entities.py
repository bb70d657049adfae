"""
REST routes of an entity service.

Routes are generated from the action table. Every request is dispatched
through the broker with the caller's permissions, so HTTP calls and
service-to-service calls take the same path.
"""
from typing import Any, Annotated

from fastapi import APIRouter, Body, Request

from entity_mixin.dependencies.auth import Broker, CallerMeta
from entity_mixin.models.entity import ACTION_TABLE, EntityAction
from entity_mixin.schemas.entity import (
    EntityListResponse,
    EntityRemoveResponse,
    EntityResponse,
)
from entity_mixin.services.entity_service import EntityService

RESERVED_QUERY_PARAMS = frozenset({"token"})


def _query_params(request: Request) -> dict[str, Any]:
    """Action parameters from the query string, without credentials."""
    return {
        key: value
        for key, value in request.query_params.items()
        if key not in RESERVED_QUERY_PARAMS
    }


def build_entity_router(service: EntityService) -> APIRouter:
    """
    Build the router of an entity service, mounted at /<service name>.

    All routes require a valid token as query parameter: `?token=xxx`
    """
    router = APIRouter(prefix=f"/{service.name}", tags=[service.name])

    def action_name(action: EntityAction) -> str:
        return f"{service.name}.{action.value}"

    async def create_entity(
        body: Annotated[dict[str, Any], Body()],
        meta: CallerMeta,
        broker: Broker,
    ):
        """Create an entity from the request body."""
        return await broker.call(action_name(EntityAction.CREATE), body, meta=meta)

    async def list_entities(request: Request, meta: CallerMeta, broker: Broker):
        """
        Paginated list.

        - **page**, **pageSize**: pagination (default 1 and 10)
        - **sort**: comma separated fields, "-" prefix for descending
        - **query**: JSON filter
        - **scope**: "false" disables default scopes
        """
        return await broker.call(
            action_name(EntityAction.LIST), _query_params(request), meta=meta
        )

    async def find_entities(request: Request, meta: CallerMeta, broker: Broker):
        """Find entities with **query**, **sort**, **limit** and **offset**."""
        return await broker.call(
            action_name(EntityAction.FIND), _query_params(request), meta=meta
        )

    async def count_entities(request: Request, meta: CallerMeta, broker: Broker):
        """Count entities matching **query**."""
        return await broker.call(
            action_name(EntityAction.COUNT), _query_params(request), meta=meta
        )

    async def get_entity(id: str, request: Request, meta: CallerMeta, broker: Broker):
        """Get an entity by its encoded id."""
        params = {**_query_params(request), "id": id}
        return await broker.call(action_name(EntityAction.GET), params, meta=meta)

    async def update_entity(
        id: str,
        body: Annotated[dict[str, Any], Body()],
        meta: CallerMeta,
        broker: Broker,
    ):
        """Update writable fields of an entity."""
        params = {**body, "id": id}
        return await broker.call(action_name(EntityAction.UPDATE), params, meta=meta)

    async def remove_entity(id: str, request: Request, meta: CallerMeta, broker: Broker):
        """Soft delete an entity."""
        params = {**_query_params(request), "id": id}
        return await broker.call(action_name(EntityAction.REMOVE), params, meta=meta)

    endpoints = {
        EntityAction.CREATE: (create_entity, EntityResponse),
        EntityAction.LIST: (list_entities, EntityListResponse),
        EntityAction.FIND: (find_entities, list[EntityResponse]),
        EntityAction.COUNT: (count_entities, int),
        EntityAction.GET: (get_entity, EntityResponse),
        EntityAction.UPDATE: (update_entity, EntityResponse),
        EntityAction.REMOVE: (remove_entity, EntityRemoveResponse),
    }

    for action, definition in ACTION_TABLE.items():
        endpoint, response_model = endpoints[action]
        router.add_api_route(
            definition.path,
            endpoint,
            methods=[definition.method],
            status_code=definition.status_code,
            response_model=response_model,
            response_model_exclude_unset=True,
            summary=f"{action.value.title()} {service.name}",
            name=action_name(action),
        )

    return router
