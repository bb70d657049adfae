"""
Storage adapters used by entity services.

All adapters speak the motor collection API. MongoDB goes through motor,
the in-memory and file-backed stores through mongomock-motor, so queries
behave the same on every backend.
"""
import asyncio
import logging
import os
from typing import Any, Optional

from bson import ObjectId, json_util
from bson.errors import BSONError
from motor.motor_asyncio import AsyncIOMotorClient
from mongomock_motor import AsyncMongoMockClient
from pymongo import ReturnDocument

from entity_mixin.core.errors import StorageCorruptionError
from entity_mixin.database.storage import StorageConfig, StorageKind

logger = logging.getLogger(__name__)

DEFAULT_DB_NAME = "data"


class MongoAdapter:
    """Adapter over a MongoDB collection."""

    def __init__(self, storage: StorageConfig):
        self.storage = storage
        self.client: Any = None
        self.collection: Any = None

    def _create_client(self):
        return AsyncIOMotorClient(self.storage.uri)

    def _get_database(self, client):
        return client.get_default_database(DEFAULT_DB_NAME)

    @property
    def connected(self) -> bool:
        return self.collection is not None

    async def connect(self) -> None:
        """Open the client and bind the collection."""
        self.client = self._create_client()
        self.collection = self._get_database(self.client)[self.storage.collection]
        logger.info(f"{self.storage.kind.value} adapter connected to '{self.storage.collection}'")

    async def disconnect(self) -> None:
        """Close the client."""
        if self.client is not None:
            self.client.close()
        self.client = None
        self.collection = None

    async def ping(self) -> bool:
        await self.client.admin.command("ping")
        return True

    async def find(
        self,
        query: dict,
        sort: Optional[list[tuple[str, int]]] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> list[dict]:
        cursor = self.collection.find(query)
        if sort:
            cursor = cursor.sort(sort)
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return await cursor.to_list(length=None)

    async def find_one(self, query: dict) -> Optional[dict]:
        return await self.collection.find_one(query)

    async def count(self, query: dict) -> int:
        return await self.collection.count_documents(query)

    async def insert(self, doc: dict) -> dict:
        """Insert a document and return it with its new _id."""
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    async def update_by_id(self, entity_id: ObjectId, changes: dict) -> Optional[dict]:
        """Set fields on a document and return the updated document."""
        return await self.collection.find_one_and_update(
            {"_id": entity_id},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )

    async def clear(self) -> int:
        """Remove every document. Returns the number removed."""
        result = await self.collection.delete_many({})
        return result.deleted_count

    async def create_indexes(self, indexes: list[dict]) -> None:
        """
        Create indexes from definitions like {"keys": [("name", 1)], "unique": True}.
        """
        for index_def in indexes:
            keys = index_def["keys"]
            kwargs = {k: v for k, v in index_def.items() if k != "keys"}
            await self.collection.create_index(keys, **kwargs)


class MemoryAdapter(MongoAdapter):
    """In-process store, kept across reconnects and lost when the process exits."""

    def __init__(self, storage: StorageConfig):
        super().__init__(storage)
        self._store: Optional[AsyncMongoMockClient] = None

    def _create_client(self):
        if self._store is None:
            self._store = AsyncMongoMockClient()
        return self._store

    def _get_database(self, client):
        return client[DEFAULT_DB_NAME]

    async def disconnect(self) -> None:
        self.client = None
        self.collection = None

    async def ping(self) -> bool:
        return self.connected


class FileAdapter(MemoryAdapter):
    """
    Embedded store persisted to one data file per collection.

    The file holds one extended-JSON document per line. It is loaded on
    connect and rewritten after every mutation.
    """

    def __init__(self, storage: StorageConfig):
        super().__init__(storage)
        # Serializes snapshot writes, they share one temp file.
        self._write_lock = asyncio.Lock()

    def _create_client(self):
        # The data file is the source of truth; start from an empty store.
        return AsyncMongoMockClient()

    async def connect(self) -> None:
        await super().connect()
        docs = await asyncio.to_thread(self._read_data_file)
        if docs:
            await self.collection.insert_many(docs)
        logger.info(f"Loaded {len(docs)} documents from {self.storage.filename}")

    def _read_data_file(self) -> list[dict]:
        filename = self.storage.filename
        if not filename.exists():
            return []

        docs = []
        corrupt = 0
        total = 0
        with open(filename, encoding="utf-8") as f:
            for line in f:
                if not line.strip():
                    continue
                total += 1
                try:
                    doc = json_util.loads(line)
                except (ValueError, BSONError):
                    corrupt += 1
                    continue
                if not isinstance(doc, dict) or "_id" not in doc:
                    corrupt += 1
                    continue
                docs.append(doc)

        if total and corrupt / total > self.storage.corrupt_alert_threshold:
            raise StorageCorruptionError(
                f"{corrupt} of {total} records in {filename} are corrupt, "
                f"above the {self.storage.corrupt_alert_threshold:.0%} threshold"
            )
        if corrupt:
            logger.warning(f"Skipped {corrupt} corrupt records in {filename}")
        return docs

    def _write_data_file(self, docs: list[dict]) -> None:
        filename = self.storage.filename
        tmp = filename.with_name(filename.name + "~")
        with open(tmp, "w", encoding="utf-8") as f:
            for doc in docs:
                f.write(json_util.dumps(doc))
                f.write("\n")
        os.replace(tmp, filename)

    async def _persist(self) -> None:
        async with self._write_lock:
            docs = await self.collection.find({}).to_list(length=None)
            await asyncio.to_thread(self._write_data_file, docs)

    async def insert(self, doc: dict) -> dict:
        doc = await super().insert(doc)
        await self._persist()
        return doc

    async def update_by_id(self, entity_id: ObjectId, changes: dict) -> Optional[dict]:
        doc = await super().update_by_id(entity_id, changes)
        if doc is not None:
            await self._persist()
        return doc

    async def clear(self) -> int:
        removed = await super().clear()
        await self._persist()
        return removed


ADAPTERS = {
    StorageKind.MEMORY: MemoryAdapter,
    StorageKind.FILE: FileAdapter,
    StorageKind.MONGODB: MongoAdapter,
}


def create_adapter(storage: StorageConfig) -> MongoAdapter:
    """Build the adapter for a storage configuration."""
    return ADAPTERS[storage.kind](storage)
