# ==============================================================================
# BASE DATABASE ADAPTER - Abstract Interface
# ==============================================================================
# Contract every document-store adapter fulfils. Services depend on this
# interface only; the concrete adapter is chosen in database/factory.py.
# ==============================================================================

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import (
    Any,
    Dict,
    Generic,
    List,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
)

# Type variable for generic database records
T = TypeVar("T")

# A sort specification: [(field, 1 | -1), ...]
SortSpec = Sequence[Tuple[str, int]]


class BaseDatabaseAdapter(ABC, Generic[T]):
    """
    Abstract Base Class for Database Adapters.

    Besides plain CRUD the contract includes single-document atomic
    conditional updates (``find_one_and_update`` / ``update_one``). The
    marketplace relies on them to reserve stock without a read-then-write
    race.
    """

    # ==========================================================================
    # LIFECYCLE METHODS
    # ==========================================================================

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish database connection.

        Raises:
            DatabaseConnectionError: If connection cannot be established
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """Release the client and its connection pool."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True when the store answers a ping."""

    @abstractmethod
    async def ensure_indexes(self) -> None:
        """Create the indexes the services depend on."""

    # ==========================================================================
    # CRUD OPERATIONS
    # ==========================================================================

    @abstractmethod
    async def create(self, collection: str, data: Dict[str, Any]) -> T:
        """Insert a document and return it with its generated ``id``."""

    @abstractmethod
    async def get_by_id(self, collection: str, id: Any) -> Optional[T]:
        """Fetch a document by id, or None."""

    @abstractmethod
    async def get_all(
        self,
        collection: str,
        skip: int = 0,
        limit: int = 100,
        filters: Optional[Dict[str, Any]] = None,
        sort: Optional[SortSpec] = None,
    ) -> List[T]:
        """Fetch documents matching ``filters`` with paging and sort."""

    @abstractmethod
    async def update(
        self,
        collection: str,
        id: Any,
        data: Dict[str, Any],
    ) -> Optional[T]:
        """``$set`` the given fields and return the updated document."""

    @abstractmethod
    async def delete(self, collection: str, id: Any) -> bool:
        """Delete a document by id. Returns True when one was removed."""

    # ==========================================================================
    # QUERY OPERATIONS
    # ==========================================================================

    @abstractmethod
    async def count(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Count documents matching filters."""

    async def exists(self, collection: str, filters: Dict[str, Any]) -> bool:
        """Check if any document matches filters."""
        return await self.count(collection, filters) > 0

    @abstractmethod
    async def find_one(
        self,
        collection: str,
        filters: Dict[str, Any],
    ) -> Optional[T]:
        """Find a single document matching filters."""

    @abstractmethod
    async def aggregate(
        self,
        collection: str,
        pipeline: List[Dict[str, Any]],
    ) -> List[Dict[str, Any]]:
        """Run an aggregation pipeline."""

    # ==========================================================================
    # ATOMIC CONDITIONAL UPDATES
    # ==========================================================================

    @abstractmethod
    async def find_one_and_update(
        self,
        collection: str,
        filters: Dict[str, Any],
        update: Dict[str, Any],
    ) -> Optional[T]:
        """
        Apply ``update`` (operator document) to the first match atomically.

        Returns the document after the update, or None when nothing
        matched the filter.
        """

    @abstractmethod
    async def update_one(
        self,
        collection: str,
        filters: Dict[str, Any],
        update: Dict[str, Any],
    ) -> int:
        """Apply ``update`` to the first match. Returns the modified count."""

    @abstractmethod
    async def update_many(
        self,
        collection: str,
        filters: Dict[str, Any],
        update: Dict[str, Any],
    ) -> int:
        """Apply ``update`` to every match. Returns the modified count."""

    @abstractmethod
    async def insert_if_absent(
        self,
        collection: str,
        filters: Dict[str, Any],
        data: Dict[str, Any],
    ) -> bool:
        """
        Insert ``data`` unless a document matching ``filters`` exists.

        Returns True when a new document was inserted.
        """
