"""
Abstract base class for document stores.

Defines the interface the services use to read and write documents:
collections of JSON-like dicts addressed by string ids.

Design Pattern: Strategy pattern for pluggable storage backends
(in-memory for development and tests, SQLAlchemy for deployments).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence


# Maximum number of values accepted by an "in" filter
MEMBERSHIP_QUERY_LIMIT = 30

# Pseudo-field addressing the document id in filters and ordering
ID_FIELD = "id"

# Supported filter operators
FILTER_OPS = ("==", "in", "contains")

# Collections
PERFORMERS = "performers"
SUPPORT_EVENTS = "support_events"
FAVORITES = "favorites"

RESOURCE_NAMES = {
    PERFORMERS: "Performer",
    SUPPORT_EVENTS: "SupportEvent",
    FAVORITES: "Favorite",
}


# ============================================================================
# Errors
# ============================================================================


class StoreError(Exception):
    """Base class for document store failures."""


class TransientStoreError(StoreError):
    """A failure that may succeed on retry (lost connection, lock timeout)."""


class DocumentMissingError(StoreError):
    """An update or delete targeted a document that does not exist."""

    def __init__(self, collection: str, doc_id: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"Document {collection}/{doc_id} does not exist")


class InvalidQueryError(StoreError):
    """A query or write request the store cannot execute."""


# ============================================================================
# Query and write primitives
# ============================================================================


@dataclass(frozen=True)
class FieldFilter:
    """
    Filter on a top-level document field.

    Attributes:
        field: Field name ("id" addresses the document id)
        value: Comparison value, or a sequence of values for op "in"
        op: "==" (equality), "in" (value is one of) or "contains"
            (array field holds the value)
    """
    field: str
    value: Any
    op: str = "=="

    def matches(self, doc_id: str, data: Dict[str, Any]) -> bool:
        """Evaluate the filter against a document."""
        actual = doc_id if self.field == ID_FIELD else data.get(self.field)
        if self.op == "in":
            return actual in self.value
        if self.op == "contains":
            return isinstance(actual, list) and self.value in actual
        return actual == self.value


class WriteKind(str, Enum):
    """Kind of a batched write."""
    SET = "set"
    UPDATE = "update"
    DELETE = "delete"


@dataclass
class WriteOp:
    """
    One write of an atomic batch.

    SET creates or replaces a document, UPDATE shallow-merges ``data`` into
    an existing document, DELETE removes an existing document.
    """
    kind: WriteKind
    collection: str
    doc_id: str
    data: Dict[str, Any] = field(default_factory=dict)


def validate_filters(filters: Sequence[FieldFilter]) -> None:
    """
    Check filters against the store contract.

    Raises:
        InvalidQueryError: On an unknown operator or an oversized "in" list
    """
    for f in filters:
        if f.op not in FILTER_OPS:
            raise InvalidQueryError(f"Unsupported filter operator '{f.op}'")
        if f.op == "in":
            if not isinstance(f.value, (list, tuple, set, frozenset)):
                raise InvalidQueryError(f"'in' filter on '{f.field}' requires a sequence")
            if len(f.value) > MEMBERSHIP_QUERY_LIMIT:
                raise InvalidQueryError(
                    f"'in' filter on '{f.field}' accepts at most "
                    f"{MEMBERSHIP_QUERY_LIMIT} values, got {len(f.value)}"
                )


class DocumentStore(ABC):
    """
    Abstract base class for document stores.

    Every method is a coroutine. Returned documents are plain dicts that
    include their id under the "id" key; callers own the returned objects.

    Methods:
        get(): Read one document
        add(): Create a document (generated or explicit id)
        update(): Shallow-merge a patch into a document
        delete(): Remove a document
        query(): Filtered, ordered, limited read of a collection
        batch_write(): Apply several writes atomically
    """

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """
        Read a document.

        Returns:
            The document, or None if it does not exist
        """
        pass

    @abstractmethod
    async def add(
        self,
        collection: str,
        data: Dict[str, Any],
        doc_id: Optional[str] = None,
    ) -> str:
        """
        Create a document.

        Args:
            collection: Collection name
            data: Document body
            doc_id: Explicit id; a random id is generated when omitted

        Returns:
            The document id

        Raises:
            InvalidQueryError: If a document with doc_id already exists
        """
        pass

    @abstractmethod
    async def update(self, collection: str, doc_id: str, patch: Dict[str, Any]) -> None:
        """
        Shallow-merge ``patch`` into an existing document.

        Raises:
            DocumentMissingError: If the document does not exist
        """
        pass

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        """
        Remove a document.

        Raises:
            DocumentMissingError: If the document does not exist
        """
        pass

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Query a collection.

        Args:
            collection: Collection name
            filters: Conjunction of field filters
            order_by: Optional field to order by
            descending: Reverse the ordering
            limit: Maximum number of documents

        Raises:
            InvalidQueryError: If a filter violates the store contract
        """
        pass

    @abstractmethod
    async def batch_write(self, ops: Sequence[WriteOp]) -> None:
        """
        Apply writes atomically: either all succeed or none is visible.

        Raises:
            DocumentMissingError: If an UPDATE or DELETE targets a missing document
        """
        pass

    async def close(self) -> None:
        """Release resources held by the store."""
        return None
