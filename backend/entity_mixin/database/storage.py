"""
Storage backend selection.

Every entity service gets exactly one storage configuration. The order is:
in-memory store for unit tests and generate-only runs, then a file-backed
store when a local directory is configured, otherwise MongoDB.
"""
import logging
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from entity_mixin.config import Settings

logger = logging.getLogger(__name__)

DATA_FILE_SUFFIX = ".db"


class StorageKind(str, Enum):
    """Supported storage backends."""
    MEMORY = "memory"
    FILE = "file"
    MONGODB = "mongodb"


class StorageConfig(BaseModel):
    """Fully specified storage for one collection."""
    kind: StorageKind = Field(..., description="Backend type")
    collection: str = Field(..., min_length=1, description="Collection name")
    uri: Optional[str] = Field(None, description="MongoDB connection string")
    filename: Optional[Path] = Field(None, description="Data file of a file-backed store")
    corrupt_alert_threshold: float = Field(
        default=0.5,
        ge=0,
        le=1,
        description="Fraction of corrupt records tolerated when loading a data file",
    )


def select_storage(
    collection: str,
    settings: Settings,
    directory: Optional[str] = None,
    uri: Optional[str] = None,
) -> StorageConfig:
    """
    Pick the storage backend for a collection.

    Args:
        collection: Collection name, also the data file name
        settings: Application settings
        directory: Local store directory, overrides settings.local_store_dir
        uri: MongoDB connection string, overrides settings.mongo_uri

    Returns:
        StorageConfig for the chosen backend. A chosen directory is created
        if it does not exist yet.
    """
    if settings.use_memory_store:
        return StorageConfig(kind=StorageKind.MEMORY, collection=collection)

    folder = directory or settings.local_store_dir
    if folder:
        path = Path(folder).resolve()
        path.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Using file store in {path} for '{collection}'")
        return StorageConfig(
            kind=StorageKind.FILE,
            collection=collection,
            filename=path / f"{collection}{DATA_FILE_SUFFIX}",
            corrupt_alert_threshold=settings.corrupt_alert_threshold,
        )

    return StorageConfig(
        kind=StorageKind.MONGODB,
        collection=collection,
        uri=uri or settings.mongo_uri,
    )
