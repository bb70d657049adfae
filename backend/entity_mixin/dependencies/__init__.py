"""
Dependencies for dependency injection in routes.
"""
from entity_mixin.dependencies.auth import Broker, CallerMeta, get_broker, get_caller_meta

__all__ = [
    "Broker",
    "CallerMeta",
    "get_broker",
    "get_caller_meta",
]
