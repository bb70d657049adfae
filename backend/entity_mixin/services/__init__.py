"""
Service layer: broker, entity services and permission delegation.
"""
from entity_mixin.services.broker import ActionSchema, Context, ParamRule, ServiceBroker
from entity_mixin.services.entity_service import (
    EntityService,
    EntityServiceConfig,
    create_entity_service,
    index_creator_for,
)
from entity_mixin.services.permissions import has_scope, validate_has

__all__ = [
    "ActionSchema",
    "Context",
    "ParamRule",
    "ServiceBroker",
    "EntityService",
    "EntityServiceConfig",
    "create_entity_service",
    "index_creator_for",
    "has_scope",
    "validate_has",
]
