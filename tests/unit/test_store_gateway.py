"""
Unit tests for StoreGateway.

Tests timeout and retry behavior, error translation and the chunked
membership helpers.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from cheerboard.services.exceptions import NotFoundError, StoreUnavailableError, ValidationError
from cheerboard.store import (
    PERFORMERS,
    DocumentMissingError,
    FieldFilter,
    InMemoryDocumentStore,
    InvalidQueryError,
    StoreGateway,
    TransientStoreError,
    WriteKind,
    WriteOp,
)
from cheerboard.store.gateway import chunked, dedupe


class TestHelpers:
    """Tests for chunked() and dedupe()."""

    def test_chunked_splits_evenly_and_remainder(self):
        assert chunked(list(range(7)), 3) == [[0, 1, 2], [3, 4, 5], [6]]

    def test_chunked_empty(self):
        assert chunked([], 30) == []

    def test_chunked_rejects_zero_size(self):
        with pytest.raises(ValueError):
            chunked([1], 0)

    def test_dedupe_keeps_first_seen_order(self):
        assert dedupe(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]


class TestRetry:
    """Tests for the timeout/retry wrapper."""

    @pytest.mark.asyncio
    async def test_success_first_attempt(self):
        store = AsyncMock()
        store.get.return_value = {"id": "x"}
        gateway = StoreGateway(store, retry_delay_seconds=0)

        assert await gateway.get(PERFORMERS, "x") == {"id": "x"}
        assert store.get.await_count == 1

    @pytest.mark.asyncio
    async def test_transient_failure_then_success(self):
        store = AsyncMock()
        store.get.side_effect = [TransientStoreError("lost connection"), {"id": "x"}]
        gateway = StoreGateway(store, retry_delay_seconds=0)

        assert await gateway.get(PERFORMERS, "x") == {"id": "x"}
        assert store.get.await_count == 2

    @pytest.mark.asyncio
    async def test_connection_error_is_retried(self):
        store = AsyncMock()
        store.query.side_effect = [ConnectionError("reset"), ConnectionError("reset"), []]
        gateway = StoreGateway(store, retry_delay_seconds=0)

        assert await gateway.query(PERFORMERS) == []
        assert store.query.await_count == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        store = AsyncMock()
        store.update.side_effect = TransientStoreError("down")
        gateway = StoreGateway(store, max_attempts=3, retry_delay_seconds=0)

        with pytest.raises(StoreUnavailableError) as exc_info:
            await gateway.update(PERFORMERS, "x", {"a": 1})

        assert store.update.await_count == 3
        assert exc_info.value.attempts == 3

    @pytest.mark.asyncio
    async def test_timeout_is_retried_then_unavailable(self):
        async def hang(*args, **kwargs):
            await asyncio.sleep(10)

        store = AsyncMock()
        store.get.side_effect = hang
        gateway = StoreGateway(store, timeout_seconds=0.01, max_attempts=2, retry_delay_seconds=0)

        with pytest.raises(StoreUnavailableError):
            await gateway.get(PERFORMERS, "x")
        assert store.get.await_count == 2

    @pytest.mark.asyncio
    async def test_linear_backoff(self, monkeypatch):
        delays = []

        async def fake_sleep(seconds):
            delays.append(seconds)

        monkeypatch.setattr("cheerboard.store.gateway.asyncio.sleep", fake_sleep)
        store = AsyncMock()
        store.get.side_effect = TransientStoreError("down")
        gateway = StoreGateway(store, max_attempts=3, retry_delay_seconds=1.0)

        with pytest.raises(StoreUnavailableError):
            await gateway.get(PERFORMERS, "x")

        assert delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_missing_document_is_not_retried(self):
        store = AsyncMock()
        store.delete.side_effect = DocumentMissingError(PERFORMERS, "prf_x")
        gateway = StoreGateway(store, retry_delay_seconds=0)

        with pytest.raises(NotFoundError) as exc_info:
            await gateway.delete(PERFORMERS, "prf_x")

        assert store.delete.await_count == 1
        assert exc_info.value.resource == "Performer"

    @pytest.mark.asyncio
    async def test_invalid_query_is_not_retried(self):
        store = AsyncMock()
        store.query.side_effect = InvalidQueryError("bad")
        gateway = StoreGateway(store, retry_delay_seconds=0)

        with pytest.raises(ValidationError):
            await gateway.query(PERFORMERS)
        assert store.query.await_count == 1

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            StoreGateway(InMemoryDocumentStore(), max_attempts=0)

    @pytest.mark.asyncio
    async def test_empty_batch_skips_store(self):
        store = AsyncMock()
        gateway = StoreGateway(store)

        await gateway.batch_write([])
        store.batch_write.assert_not_awaited()


class TestMembershipQueries:
    """Tests for query_in() and get_many() over the in-memory store."""

    @pytest.mark.asyncio
    async def test_query_in_chunks_large_id_lists(self, gateway, memory_store):
        for i in range(75):
            await memory_store.add(PERFORMERS, {"n": i}, doc_id=f"p{i:03d}")
        gateway.store.query = AsyncMock(wraps=memory_store.query)

        ids = [f"p{i:03d}" for i in range(75)]
        docs = await gateway.query_in(PERFORMERS, "id", ids)

        assert sorted(doc["id"] for doc in docs) == ids
        assert gateway.store.query.await_count == 3

    @pytest.mark.asyncio
    async def test_query_in_union_equals_single_queries(self, gateway, memory_store):
        for i in range(40):
            await memory_store.add(PERFORMERS, {"even": i % 2 == 0}, doc_id=f"p{i}")

        ids = [f"p{i}" for i in range(40)] + ["missing"]
        docs = await gateway.query_in(PERFORMERS, "id", ids, filters=[FieldFilter("even", True)])

        expected = {f"p{i}" for i in range(0, 40, 2)}
        assert {doc["id"] for doc in docs} == expected

    @pytest.mark.asyncio
    async def test_query_in_chunk_size_is_capped(self, gateway, memory_store):
        await memory_store.add(PERFORMERS, {}, doc_id="a")
        ids = ["a"] + [f"x{i}" for i in range(40)]

        # A chunk size above the store limit must not produce an oversized "in"
        docs = await gateway.query_in(PERFORMERS, "id", ids, chunk_size=100)

        assert [doc["id"] for doc in docs] == ["a"]

    @pytest.mark.asyncio
    async def test_get_many_omits_missing(self, gateway, memory_store):
        await memory_store.add(PERFORMERS, {"stage_name": "Mina"}, doc_id="a")

        docs = await gateway.get_many(PERFORMERS, ["a", "b", "a"])

        assert list(docs) == ["a"]
        assert docs["a"]["stage_name"] == "Mina"

    @pytest.mark.asyncio
    async def test_get_many_empty(self, gateway):
        assert await gateway.get_many(PERFORMERS, []) == {}

    @pytest.mark.asyncio
    async def test_batch_write_missing_doc_is_not_found(self, gateway):
        with pytest.raises(NotFoundError):
            await gateway.batch_write([WriteOp(WriteKind.UPDATE, PERFORMERS, "nope", {"a": 1})])
