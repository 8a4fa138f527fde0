# ==============================================================================
# MONGODB ADAPTER - Motor Async Driver Implementation
# ==============================================================================
# Document-oriented database adapter with full async support
# Uses Motor for non-blocking MongoDB operations
# ==============================================================================

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, GEOSPHERE, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from agricsmart.core.constants import Collections
from agricsmart.core.exceptions import DatabaseConnectionError
from agricsmart.core.settings import settings
from agricsmart.database.adapters.base_adapter import BaseDatabaseAdapter, SortSpec
from agricsmart.utils.helpers import utc_now

logger = logging.getLogger(__name__)


class MongoDBAdapter(BaseDatabaseAdapter[Dict[str, Any]]):
    """
    MongoDB database adapter using Motor async driver.

    Documents leave the adapter with a string ``id`` in place of ``_id`` and
    enter it the other way round. ``created_at``/``updated_at`` are stamped
    on every write.

    A pre-built client may be injected (tests pass an in-memory mongomock
    client); the adapter then neither pings nor closes it.

    Example:
        >>> adapter = MongoDBAdapter()
        >>> await adapter.connect()
        >>> doc = await adapter.create("users", {"email": "test@example.com"})
        >>> print(doc["id"])  # String ID
    """

    def __init__(
        self,
        connection_url: Optional[str] = None,
        database_name: Optional[str] = None,
        client: Optional[Any] = None,
    ) -> None:
        self._connection_url = connection_url or settings.MONGODB_URL
        self._database_name = database_name or settings.MONGODB_DB
        self._client: Optional[Any] = client
        self._owns_client = client is None
        self._database: Optional[AsyncIOMotorDatabase] = (
            client[self._database_name] if client is not None else None
        )

    # ==========================================================================
    # ID SERIALIZATION HELPERS
    # ==========================================================================

    @staticmethod
    def _serialize_id(document: Dict[str, Any]) -> Dict[str, Any]:
        """Rename ``_id`` to a string ``id``."""
        if document and "_id" in document:
            raw_id = document.pop("_id")
            document["id"] = str(raw_id) if raw_id is not None else None
        return document

    @staticmethod
    def _deserialize_id(id_value: Any) -> Any:
        """
        Convert a string id to ObjectId.

        Malformed ids are passed through unchanged; no stored document has
        a string ``_id``, so the lookup simply finds nothing.
        """
        if isinstance(id_value, str):
            try:
                return ObjectId(id_value)
            except InvalidId:
                return id_value
        return id_value

    def _build_query(
        self,
        filters: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        """Translate ``id`` into ``_id`` (including ``$in``/``$nin`` lists)."""
        if not filters:
            return {}

        query = {}
        for key, value in filters.items():
            if key == "id":
                if isinstance(value, dict):
                    query["_id"] = {
                        op: [self._deserialize_id(v) for v in operand]
                        if op in ("$in", "$nin") else self._deserialize_id(operand)
                        for op, operand in value.items()
                    }
                else:
                    query["_id"] = self._deserialize_id(value)
            else:
                query[key] = value
        return query

    @staticmethod
    def _touch(update: Dict[str, Any]) -> Dict[str, Any]:
        """Add ``updated_at`` to an operator update document."""
        update = {op: dict(fields) if isinstance(fields, dict) else fields
                  for op, fields in update.items()}
        touched = any(
            isinstance(fields, dict) and "updated_at" in fields
            for fields in update.values()
        )
        if not touched:
            update.setdefault("$set", {})["updated_at"] = utc_now()
        return update

    @property
    def db(self) -> AsyncIOMotorDatabase:
        if self._database is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._database

    # ==========================================================================
    # LIFECYCLE METHODS
    # ==========================================================================

    async def connect(self) -> None:
        """
        Create the Motor client and verify the server answers.

        Raises:
            DatabaseConnectionError: If the server cannot be reached
        """
        if not self._owns_client:
            logger.info(f"MongoDB adapter using injected client ({self._database_name})")
            return

        try:
            self._client = AsyncIOMotorClient(
                self._connection_url,
                maxPoolSize=settings.DB_POOL_SIZE,
                serverSelectionTimeoutMS=settings.DB_CONNECT_TIMEOUT_MS,
                connectTimeoutMS=settings.DB_CONNECT_TIMEOUT_MS,
            )
            self._database = self._client[self._database_name]

            await self._client.admin.command("ping")

            logger.info(f"MongoDB adapter connected to {self._database_name}")

        except PyMongoError as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise DatabaseConnectionError(f"MongoDB connection failed: {e}")

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self._client is not None and self._owns_client:
            self._client.close()
            logger.info("MongoDB adapter disconnected")

    async def health_check(self) -> bool:
        try:
            if self._database is None:
                return False
            await self.db.command("ping")
            return True
        except Exception as e:
            logger.warning(f"MongoDB health check failed: {e}")
            return False

    async def ensure_indexes(self) -> None:
        """Create the indexes the services rely on."""
        await self.db[Collections.USERS].create_index("email", unique=True)
        await self.db[Collections.PRODUCTS].create_index([("location", GEOSPHERE)])
        await self.db[Collections.PRODUCTS].create_index(
            [("seller_id", ASCENDING), ("status", ASCENDING)]
        )
        await self.db[Collections.ORDERS].create_index("buyer_id")
        await self.db[Collections.ORDERS].create_index("seller_id")
        await self.db[Collections.PAYMENTS].create_index(
            "payment_details.reference", unique=True
        )
        await self.db[Collections.NOTIFICATIONS].create_index(
            [("user_id", ASCENDING), ("created_at", DESCENDING)]
        )
        await self.db[Collections.NOTIFICATIONS].create_index(
            "event_id", unique=True, partialFilterExpression={"event_id": {"$type": "string"}}
        )
        await self.db[Collections.COURSES].create_index("slug", unique=True)
        await self.db[Collections.PROGRESS].create_index(
            [("user_id", ASCENDING), ("course_id", ASCENDING)], unique=True
        )
        await self.db[Collections.CERTIFICATES].create_index(
            [("user_id", ASCENDING), ("course_id", ASCENDING)], unique=True
        )
        await self.db[Collections.OUTBOX].create_index("dedupe_key", unique=True)
        await self.db[Collections.OUTBOX].create_index(
            [("status", ASCENDING), ("available_at", ASCENDING)]
        )
        logger.info("MongoDB indexes ensured")

    # ==========================================================================
    # CRUD OPERATIONS
    # ==========================================================================

    async def create(
        self,
        collection: str,
        data: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Create a new document."""
        now = utc_now()
        data = {k: v for k, v in data.items() if k != "id"}
        data.setdefault("created_at", now)
        data.setdefault("updated_at", now)

        result = await self.db[collection].insert_one(data)
        data.pop("_id", None)
        data["id"] = str(result.inserted_id)
        return data

    async def get_by_id(
        self,
        collection: str,
        id: Any,
    ) -> Optional[Dict[str, Any]]:
        document = await self.db[collection].find_one(
            {"_id": self._deserialize_id(id)}
        )
        return self._serialize_id(document) if document else None

    async def get_all(
        self,
        collection: str,
        skip: int = 0,
        limit: int = 100,
        filters: Optional[Dict[str, Any]] = None,
        sort: Optional[SortSpec] = None,
    ) -> List[Dict[str, Any]]:
        """Retrieve multiple documents with pagination."""
        cursor = self.db[collection].find(self._build_query(filters))

        if sort:
            cursor = cursor.sort(list(sort))

        cursor = cursor.skip(skip).limit(limit)

        documents = await cursor.to_list(length=limit)
        return [self._serialize_id(doc) for doc in documents]

    async def update(
        self,
        collection: str,
        id: Any,
        data: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        """Update an existing document."""
        data = {k: v for k, v in data.items() if k != "id"}
        return await self.find_one_and_update(collection, {"id": id}, {"$set": data})

    async def delete(
        self,
        collection: str,
        id: Any,
    ) -> bool:
        result = await self.db[collection].delete_one(
            {"_id": self._deserialize_id(id)}
        )
        return result.deleted_count > 0

    # ==========================================================================
    # QUERY OPERATIONS
    # ==========================================================================

    async def count(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
    ) -> int:
        return await self.db[collection].count_documents(self._build_query(filters))

    async def find_one(
        self,
        collection: str,
        filters: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        document = await self.db[collection].find_one(self._build_query(filters))
        return self._serialize_id(document) if document else None

    async def aggregate(
        self,
        collection: str,
        pipeline: List[Dict[str, Any]],
    ) -> List[Dict[str, Any]]:
        cursor = self.db[collection].aggregate(pipeline)
        results = await cursor.to_list(length=None)
        return [self._serialize_id(doc) for doc in results]

    # ==========================================================================
    # ATOMIC CONDITIONAL UPDATES
    # ==========================================================================

    async def find_one_and_update(
        self,
        collection: str,
        filters: Dict[str, Any],
        update: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        result = await self.db[collection].find_one_and_update(
            self._build_query(filters),
            self._touch(update),
            return_document=ReturnDocument.AFTER,
        )
        return self._serialize_id(result) if result else None

    async def update_one(
        self,
        collection: str,
        filters: Dict[str, Any],
        update: Dict[str, Any],
    ) -> int:
        result = await self.db[collection].update_one(
            self._build_query(filters),
            self._touch(update),
        )
        return result.modified_count

    async def update_many(
        self,
        collection: str,
        filters: Dict[str, Any],
        update: Dict[str, Any],
    ) -> int:
        result = await self.db[collection].update_many(
            self._build_query(filters),
            self._touch(update),
        )
        return result.modified_count

    async def insert_if_absent(
        self,
        collection: str,
        filters: Dict[str, Any],
        data: Dict[str, Any],
    ) -> bool:
        now = utc_now()
        document = {k: v for k, v in data.items() if k != "id"}
        document.setdefault("created_at", now)
        document.setdefault("updated_at", now)
        try:
            result = await self.db[collection].update_one(
                self._build_query(filters),
                {"$setOnInsert": document},
                upsert=True,
            )
        except DuplicateKeyError:
            # Lost an upsert race against the unique index
            return False
        return result.upserted_id is not None
