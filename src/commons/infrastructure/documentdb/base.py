"""Abstract base class for document database operations."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any


@dataclass
class HealthStatus:
    """Health check result."""

    healthy: bool
    latency_ms: float
    message: str | None = None
    details: dict[str, str] | None = None


class DuplicateDocumentError(Exception):
    """Raised when a write violates a unique index."""

    def __init__(self, collection: str, detail: str = "") -> None:
        self.collection = collection
        self.detail = detail
        super().__init__(f"Duplicate document in {collection}: {detail}".rstrip(": "))


def to_storable(value: Any) -> Any:
    """Convert enums to their values, recursing into dicts and lists.

    Datetimes are left untouched so range filters keep working.
    """
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: to_storable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_storable(item) for item in value]
    return value


class DocumentDBBase(ABC):
    """Abstract base class for document database operations.

    Documents carry their identifier in an 'id' field. Filters use the
    MongoDB query subset: equality, $in, $ne, $lt, $lte, $gt, $gte and $or.
    Every method operates on a single document atomically.
    """

    @abstractmethod
    async def insert(
        self,
        collection: str,
        document: dict[str, Any],
    ) -> str:
        """Insert a document.

        Args:
            collection: Collection name.
            document: Document to insert.

        Returns:
            Document ID.

        Raises:
            DuplicateDocumentError: If a unique index is violated.
        """

    @abstractmethod
    async def find_by_id(
        self,
        collection: str,
        document_id: str,
    ) -> dict[str, Any] | None:
        """Find a document by ID."""

    @abstractmethod
    async def find(
        self,
        collection: str,
        filters: dict[str, Any],
        skip: int = 0,
        limit: int = 100,
        sort: list[tuple[str, int]] | None = None,
    ) -> list[dict[str, Any]]:
        """Find documents matching filters.

        Args:
            collection: Collection name.
            filters: Query filters.
            skip: Number of documents to skip.
            limit: Maximum documents to return.
            sort: Sort specification [(field, direction)].
                  Direction: 1 for ascending, -1 for descending.
        """

    @abstractmethod
    async def find_one(
        self,
        collection: str,
        filters: dict[str, Any],
    ) -> dict[str, Any] | None:
        """Find a single document matching filters."""

    @abstractmethod
    async def update(
        self,
        collection: str,
        document_id: str,
        updates: dict[str, Any],
    ) -> bool:
        """Set fields on one document.

        Returns:
            True if the document exists, False otherwise.
        """

    @abstractmethod
    async def find_one_and_update(
        self,
        collection: str,
        filters: dict[str, Any],
        updates: dict[str, Any] | None = None,
        increments: dict[str, int] | None = None,
        sort: list[tuple[str, int]] | None = None,
        upsert: bool = False,
    ) -> dict[str, Any] | None:
        """Atomically update the first matching document.

        This is the compare-and-set primitive: the filter is evaluated and
        the update applied as one operation.

        Args:
            collection: Collection name.
            filters: Query filters the document must match.
            updates: Fields to set.
            increments: Numeric fields to add to.
            sort: Which document wins when several match.
            upsert: Create the document from the equality filters if none match.

        Returns:
            The document after the update, or None if nothing matched.
        """

    @abstractmethod
    async def update_many(
        self,
        collection: str,
        filters: dict[str, Any],
        updates: dict[str, Any],
    ) -> int:
        """Set fields on every matching document.

        Returns:
            Count of updated documents.
        """

    @abstractmethod
    async def delete(
        self,
        collection: str,
        document_id: str,
    ) -> bool:
        """Delete a document.

        Returns:
            True if deleted, False if not found.
        """

    @abstractmethod
    async def count(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> int:
        """Count documents matching filters."""

    @abstractmethod
    async def create_index(
        self,
        collection: str,
        fields: list[tuple[str, int]],
        unique: bool = False,
        name: str | None = None,
        partial_filter: dict[str, Any] | None = None,
    ) -> str:
        """Create an index on the collection.

        Args:
            collection: Collection name.
            fields: Index fields [(field, direction)].
            unique: Whether index should be unique.
            name: Optional index name.
            partial_filter: Only index documents matching this filter.

        Returns:
            Index name.
        """

    @abstractmethod
    async def health_check(self) -> HealthStatus:
        """Check service health."""

    async def close(self) -> None:  # noqa: B027
        """Release connections. No-op by default."""
