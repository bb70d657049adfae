"""
API Routers module.
"""
from entity_mixin.routers import entities, health

__all__ = ["entities", "health"]
