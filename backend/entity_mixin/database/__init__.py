"""
Database module - storage selection and adapters.
"""
from entity_mixin.database.adapters import (
    FileAdapter,
    MemoryAdapter,
    MongoAdapter,
    create_adapter,
)
from entity_mixin.database.storage import StorageConfig, StorageKind, select_storage

__all__ = [
    "FileAdapter",
    "MemoryAdapter",
    "MongoAdapter",
    "create_adapter",
    "StorageConfig",
    "StorageKind",
    "select_storage",
]
