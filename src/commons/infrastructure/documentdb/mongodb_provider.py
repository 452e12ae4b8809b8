"""MongoDB implementation of document database."""

import time
from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from src.commons.infrastructure.documentdb.base import (
    DocumentDBBase,
    DuplicateDocumentError,
    HealthStatus,
    to_storable,
)


def _to_mongo(document: dict[str, Any]) -> dict[str, Any]:
    """Map the domain 'id' field onto MongoDB's '_id'."""
    doc = to_storable(document)
    if "id" in doc:
        doc["_id"] = doc.pop("id")
    return doc


def _from_mongo(document: dict[str, Any] | None) -> dict[str, Any] | None:
    """Restore the domain 'id' field from MongoDB's '_id'."""
    if document is None:
        return None
    doc = dict(document)
    doc["id"] = str(doc.pop("_id"))
    return doc


class MongoDBDocumentDB(DocumentDBBase):
    """MongoDB implementation of document database.

    Uses Motor for async operations. The client is timezone aware so
    datetimes come back as UTC-aware values.
    """

    def __init__(
        self,
        connection_string: str,
        database_name: str,
    ) -> None:
        """Initialize MongoDB client.

        Args:
            connection_string: MongoDB connection URI.
            database_name: Name of the database to use.
        """
        self._client: AsyncIOMotorClient[dict[str, Any]] = AsyncIOMotorClient(
            connection_string, tz_aware=True
        )
        self._db: AsyncIOMotorDatabase[dict[str, Any]] = self._client[database_name]
        self._database_name = database_name

    async def insert(self, collection: str, document: dict[str, Any]) -> str:
        try:
            result = await self._db[collection].insert_one(_to_mongo(document))
        except DuplicateKeyError as e:
            raise DuplicateDocumentError(collection, str(e.details or e)) from e
        return str(result.inserted_id)

    async def find_by_id(
        self,
        collection: str,
        document_id: str,
    ) -> dict[str, Any] | None:
        return _from_mongo(await self._db[collection].find_one({"_id": document_id}))

    async def find(
        self,
        collection: str,
        filters: dict[str, Any],
        skip: int = 0,
        limit: int = 100,
        sort: list[tuple[str, int]] | None = None,
    ) -> list[dict[str, Any]]:
        cursor = self._db[collection].find(_to_mongo(filters))
        if sort:
            cursor = cursor.sort(sort)
        cursor = cursor.skip(skip).limit(limit)

        results: list[dict[str, Any]] = []
        async for doc in cursor:
            results.append(_from_mongo(doc))  # type: ignore[arg-type]
        return results

    async def find_one(
        self,
        collection: str,
        filters: dict[str, Any],
    ) -> dict[str, Any] | None:
        return _from_mongo(await self._db[collection].find_one(_to_mongo(filters)))

    async def update(
        self,
        collection: str,
        document_id: str,
        updates: dict[str, Any],
    ) -> bool:
        result = await self._db[collection].update_one(
            {"_id": document_id},
            {"$set": to_storable(updates)},
        )
        return bool(result.matched_count > 0)

    async def find_one_and_update(
        self,
        collection: str,
        filters: dict[str, Any],
        updates: dict[str, Any] | None = None,
        increments: dict[str, int] | None = None,
        sort: list[tuple[str, int]] | None = None,
        upsert: bool = False,
    ) -> dict[str, Any] | None:
        operations: dict[str, Any] = {}
        if updates:
            operations["$set"] = to_storable(updates)
        if increments:
            operations["$inc"] = increments
        if not operations:
            raise ValueError("find_one_and_update needs updates or increments")

        try:
            doc = await self._db[collection].find_one_and_update(
                _to_mongo(filters),
                operations,
                sort=sort,
                upsert=upsert,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as e:
            raise DuplicateDocumentError(collection, str(e.details or e)) from e
        return _from_mongo(doc)

    async def update_many(
        self,
        collection: str,
        filters: dict[str, Any],
        updates: dict[str, Any],
    ) -> int:
        result = await self._db[collection].update_many(
            _to_mongo(filters),
            {"$set": to_storable(updates)},
        )
        return int(result.modified_count)

    async def delete(self, collection: str, document_id: str) -> bool:
        result = await self._db[collection].delete_one({"_id": document_id})
        return bool(result.deleted_count > 0)

    async def count(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> int:
        if filters:
            return int(await self._db[collection].count_documents(_to_mongo(filters)))
        return int(await self._db[collection].estimated_document_count())

    async def create_index(
        self,
        collection: str,
        fields: list[tuple[str, int]],
        unique: bool = False,
        name: str | None = None,
        partial_filter: dict[str, Any] | None = None,
    ) -> str:
        options: dict[str, Any] = {"unique": unique}
        if name:
            options["name"] = name
        if partial_filter:
            options["partialFilterExpression"] = to_storable(partial_filter)
        return str(await self._db[collection].create_index(fields, **options))

    async def health_check(self) -> HealthStatus:
        start = time.perf_counter()
        try:
            await self._client.admin.command("ping")
        except Exception as e:
            return HealthStatus(
                healthy=False,
                latency_ms=(time.perf_counter() - start) * 1000,
                message=f"MongoDB health check failed: {e}",
                details={"database": self._database_name, "error": str(e)},
            )
        return HealthStatus(
            healthy=True,
            latency_ms=(time.perf_counter() - start) * 1000,
            message="MongoDB is healthy",
            details={"database": self._database_name},
        )

    async def close(self) -> None:
        """Close the client connection."""
        self._client.close()
