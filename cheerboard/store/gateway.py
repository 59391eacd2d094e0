"""
Store gateway: timeout and bounded retry around every document store call.

Every call is wrapped in ``asyncio.wait_for``. Transient failures (timeouts,
connection errors, TransientStoreError) are retried with linear backoff
(``retry_delay * attempt``); once attempts are exhausted the gateway raises
StoreUnavailableError. Missing documents and invalid queries are not
retried and surface as NotFoundError / ValidationError.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from cheerboard.services.exceptions import NotFoundError, StoreUnavailableError, ValidationError
from cheerboard.store.base import (
    ID_FIELD,
    MEMBERSHIP_QUERY_LIMIT,
    RESOURCE_NAMES,
    DocumentMissingError,
    DocumentStore,
    FieldFilter,
    InvalidQueryError,
    TransientStoreError,
    WriteOp,
)
from cheerboard.utils.logging_config import get_logger


logger = get_logger("store")

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 15.0
MAX_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 1.0

RETRYABLE_ERRORS = (asyncio.TimeoutError, TimeoutError, ConnectionError, TransientStoreError)


def chunked(values: Sequence[T], size: int) -> List[List[T]]:
    """Split ``values`` into consecutive chunks of at most ``size`` items."""
    if size < 1:
        raise ValueError("chunk size must be >= 1")
    return [list(values[i:i + size]) for i in range(0, len(values), size)]


def dedupe(values: Iterable[T]) -> List[T]:
    """Remove duplicates, keeping first-seen order."""
    return list(dict.fromkeys(values))


class StoreGateway:
    """
    Timeout/retry wrapper exposing the DocumentStore operations.

    Usage:
        >>> gateway = StoreGateway(InMemoryDocumentStore())
        >>> doc = await gateway.get("performers", "prf_01...")

    Args:
        store: Underlying document store
        timeout_seconds: Per-attempt timeout
        max_attempts: Attempts per call (>= 1)
        retry_delay_seconds: Backoff unit; attempt N waits N * delay
    """

    def __init__(
        self,
        store: DocumentStore,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_attempts: int = MAX_ATTEMPTS,
        retry_delay_seconds: float = RETRY_DELAY_SECONDS,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.store = store
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max_attempts
        self.retry_delay_seconds = retry_delay_seconds

    async def _call(self, operation: str, factory: Callable[[], Awaitable[T]]) -> T:
        """
        Run a store call with timeout and retry.

        Args:
            operation: Operation label for logs and errors
            factory: Zero-argument callable creating a fresh awaitable per attempt

        Raises:
            NotFoundError: The store reported a missing document
            ValidationError: The store rejected the request
            StoreUnavailableError: All attempts failed transiently
        """
        last_error: Optional[BaseException] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                return await asyncio.wait_for(factory(), timeout=self.timeout_seconds)
            except DocumentMissingError as e:
                raise NotFoundError(RESOURCE_NAMES.get(e.collection, e.collection), e.doc_id) from e
            except InvalidQueryError as e:
                raise ValidationError(str(e)) from e
            except RETRYABLE_ERRORS as e:
                last_error = e
                logger.warning(
                    f"Store {operation} failed (attempt {attempt}/{self.max_attempts}): "
                    f"{type(e).__name__}: {e}"
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.retry_delay_seconds * attempt)

        logger.error(f"Store {operation} gave up after {self.max_attempts} attempts")
        raise StoreUnavailableError(operation, self.max_attempts, last_error)

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        return await self._call("get", lambda: self.store.get(collection, doc_id))

    async def add(self, collection: str, data: Dict[str, Any], doc_id: Optional[str] = None) -> str:
        return await self._call("add", lambda: self.store.add(collection, data, doc_id))

    async def update(self, collection: str, doc_id: str, patch: Dict[str, Any]) -> None:
        await self._call("update", lambda: self.store.update(collection, doc_id, patch))

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._call("delete", lambda: self.store.delete(collection, doc_id))

    async def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        return await self._call(
            "query",
            lambda: self.store.query(collection, filters, order_by, descending, limit),
        )

    async def batch_write(self, ops: Sequence[WriteOp]) -> None:
        if not ops:
            return
        await self._call("batch_write", lambda: self.store.batch_write(ops))

    async def query_in(
        self,
        collection: str,
        field: str,
        values: Iterable[Any],
        filters: Sequence[FieldFilter] = (),
        chunk_size: int = MEMBERSHIP_QUERY_LIMIT,
    ) -> List[Dict[str, Any]]:
        """
        Membership query over any number of values.

        Values are deduplicated and split into chunks no larger than the
        store's "in" limit; each chunk is queried independently and the
        results are concatenated in chunk order.
        """
        unique = dedupe(values)
        size = min(chunk_size, MEMBERSHIP_QUERY_LIMIT)
        results: List[Dict[str, Any]] = []
        for chunk in chunked(unique, size):
            results.extend(
                await self.query(collection, [*filters, FieldFilter(field, chunk, "in")])
            )
        return results

    async def get_many(
        self,
        collection: str,
        doc_ids: Iterable[str],
        chunk_size: int = MEMBERSHIP_QUERY_LIMIT,
    ) -> Dict[str, Dict[str, Any]]:
        """Batch-read documents by id; missing ids are absent from the result."""
        docs = await self.query_in(collection, ID_FIELD, doc_ids, chunk_size=chunk_size)
        return {doc[ID_FIELD]: doc for doc in docs}
