"""
Unit tests for the document store implementations.

Every test runs against both the in-memory store and the SQLAlchemy store
over an in-memory SQLite database.
"""

import asyncio

import pytest
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.pool import StaticPool

from cheerboard.db.database import create_db_engine, create_session_factory, init_db
from cheerboard.store import (
    FAVORITES,
    PERFORMERS,
    DocumentMissingError,
    FieldFilter,
    InMemoryDocumentStore,
    InvalidQueryError,
    SqlDocumentStore,
    TransientStoreError,
    WriteKind,
    WriteOp,
    create_store,
)


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Each store implementation, empty."""
    if request.param == "memory":
        yield InMemoryDocumentStore()
        return

    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield SqlDocumentStore(create_session_factory(engine))
    engine.dispose()


async def _seed(store):
    await store.add(PERFORMERS, {"stage_name": "Mina", "status": "approved", "rank": 2,
                                 "tags": ["a", "b"]}, doc_id="p1")
    await store.add(PERFORMERS, {"stage_name": "Aya", "status": "pending", "rank": 1,
                                 "tags": ["b"]}, doc_id="p2")
    await store.add(PERFORMERS, {"stage_name": "Rin", "status": "approved", "rank": 3,
                                 "tags": []}, doc_id="p3")


class TestCrud:
    """Tests for get/add/update/delete."""

    @pytest.mark.asyncio
    async def test_add_and_get(self, store):
        doc_id = await store.add(PERFORMERS, {"stage_name": "Mina"}, doc_id="p1")

        assert doc_id == "p1"
        assert await store.get(PERFORMERS, "p1") == {"id": "p1", "stage_name": "Mina"}

    @pytest.mark.asyncio
    async def test_add_generates_id(self, store):
        doc_id = await store.add(PERFORMERS, {"stage_name": "Mina"})

        assert doc_id
        assert (await store.get(PERFORMERS, doc_id))["stage_name"] == "Mina"

    @pytest.mark.asyncio
    async def test_add_duplicate_id_rejected(self, store):
        await store.add(PERFORMERS, {}, doc_id="p1")

        with pytest.raises(InvalidQueryError):
            await store.add(PERFORMERS, {}, doc_id="p1")

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store):
        assert await store.get(PERFORMERS, "nope") is None

    @pytest.mark.asyncio
    async def test_collections_are_separate(self, store):
        await store.add(PERFORMERS, {"x": 1}, doc_id="same")

        assert await store.get(FAVORITES, "same") is None

    @pytest.mark.asyncio
    async def test_update_is_shallow_merge(self, store):
        await store.add(PERFORMERS, {"stage_name": "Mina", "group_names": ["A"]}, doc_id="p1")

        await store.update(PERFORMERS, "p1", {"group_names": ["B", "C"], "status": "approved"})

        assert await store.get(PERFORMERS, "p1") == {
            "id": "p1",
            "stage_name": "Mina",
            "group_names": ["B", "C"],
            "status": "approved",
        }

    @pytest.mark.asyncio
    async def test_update_missing_raises(self, store):
        with pytest.raises(DocumentMissingError):
            await store.update(PERFORMERS, "nope", {"a": 1})

    @pytest.mark.asyncio
    async def test_delete(self, store):
        await store.add(PERFORMERS, {}, doc_id="p1")

        await store.delete(PERFORMERS, "p1")

        assert await store.get(PERFORMERS, "p1") is None
        with pytest.raises(DocumentMissingError):
            await store.delete(PERFORMERS, "p1")

    @pytest.mark.asyncio
    async def test_returned_documents_are_copies(self, store):
        await store.add(PERFORMERS, {"tags": ["a"]}, doc_id="p1")

        doc = await store.get(PERFORMERS, "p1")
        doc["tags"].append("mutated")

        assert (await store.get(PERFORMERS, "p1"))["tags"] == ["a"]


class TestQuery:
    """Tests for filtered, ordered and limited queries."""

    @pytest.mark.asyncio
    async def test_equality_filter(self, store):
        await _seed(store)

        docs = await store.query(PERFORMERS, [FieldFilter("status", "approved")])

        assert sorted(d["id"] for d in docs) == ["p1", "p3"]

    @pytest.mark.asyncio
    async def test_in_filter_on_id(self, store):
        await _seed(store)

        docs = await store.query(PERFORMERS, [FieldFilter("id", ["p1", "p2", "zz"], "in")])

        assert sorted(d["id"] for d in docs) == ["p1", "p2"]

    @pytest.mark.asyncio
    async def test_in_filter_on_field(self, store):
        await _seed(store)

        docs = await store.query(PERFORMERS, [FieldFilter("stage_name", ["Aya", "Rin"], "in")])

        assert sorted(d["id"] for d in docs) == ["p2", "p3"]

    @pytest.mark.asyncio
    async def test_contains_filter(self, store):
        await _seed(store)

        docs = await store.query(PERFORMERS, [FieldFilter("tags", "b", "contains")])

        assert sorted(d["id"] for d in docs) == ["p1", "p2"]

    @pytest.mark.asyncio
    async def test_conjunction_of_filters(self, store):
        await _seed(store)

        docs = await store.query(
            PERFORMERS,
            [FieldFilter("status", "approved"), FieldFilter("tags", "a", "contains")],
        )

        assert [d["id"] for d in docs] == ["p1"]

    @pytest.mark.asyncio
    async def test_order_and_limit(self, store):
        await _seed(store)

        docs = await store.query(PERFORMERS, order_by="stage_name", descending=True, limit=2)

        assert [d["stage_name"] for d in docs] == ["Rin", "Mina"]

    @pytest.mark.asyncio
    async def test_in_filter_over_limit_rejected(self, store):
        with pytest.raises(InvalidQueryError):
            await store.query(PERFORMERS, [FieldFilter("id", [str(i) for i in range(31)], "in")])

    @pytest.mark.asyncio
    async def test_in_filter_at_limit_accepted(self, store):
        assert await store.query(PERFORMERS, [FieldFilter("id", [str(i) for i in range(30)], "in")]) == []

    @pytest.mark.asyncio
    async def test_unknown_operator_rejected(self, store):
        with pytest.raises(InvalidQueryError):
            await store.query(PERFORMERS, [FieldFilter("rank", 1, ">")])


class TestBatchWrite:
    """Tests for atomic batches."""

    @pytest.mark.asyncio
    async def test_batch_applies_all_kinds(self, store):
        await _seed(store)

        await store.batch_write([
            WriteOp(WriteKind.SET, PERFORMERS, "p4", {"stage_name": "Yui"}),
            WriteOp(WriteKind.UPDATE, PERFORMERS, "p1", {"status": "rejected"}),
            WriteOp(WriteKind.DELETE, PERFORMERS, "p2"),
        ])

        assert (await store.get(PERFORMERS, "p4"))["stage_name"] == "Yui"
        assert (await store.get(PERFORMERS, "p1"))["status"] == "rejected"
        assert (await store.get(PERFORMERS, "p1"))["stage_name"] == "Mina"
        assert await store.get(PERFORMERS, "p2") is None

    @pytest.mark.asyncio
    async def test_batch_is_all_or_nothing(self, store):
        await _seed(store)

        with pytest.raises(DocumentMissingError):
            await store.batch_write([
                WriteOp(WriteKind.UPDATE, PERFORMERS, "p1", {"status": "rejected"}),
                WriteOp(WriteKind.UPDATE, PERFORMERS, "missing", {"status": "rejected"}),
            ])

        assert (await store.get(PERFORMERS, "p1"))["status"] == "approved"

    @pytest.mark.asyncio
    async def test_set_replaces_document(self, store):
        await _seed(store)

        await store.batch_write([WriteOp(WriteKind.SET, PERFORMERS, "p1", {"stage_name": "New"})])

        assert await store.get(PERFORMERS, "p1") == {"id": "p1", "stage_name": "New"}


def test_create_store_memory():
    assert isinstance(create_store("memory://"), InMemoryDocumentStore)


def test_create_store_sql(tmp_path):
    store = create_store(f"sqlite:///{tmp_path / 'cheerboard.db'}")

    assert isinstance(store, SqlDocumentStore)
    assert (tmp_path / "cheerboard.db").exists()


class TestSqlConcurrency:
    """Tests for the SQL store under concurrent requests."""

    @pytest.fixture(params=["memory", "file"])
    def sql_store(self, request, tmp_path):
        url = "sqlite://" if request.param == "memory" else f"sqlite:///{tmp_path / 'concurrent.db'}"
        engine = create_db_engine(url)
        init_db(engine)
        yield SqlDocumentStore(create_session_factory(engine))
        engine.dispose()

    @pytest.mark.asyncio
    async def test_failed_batch_stays_rolled_back_beside_concurrent_writes(self, sql_store):
        ids = [f"p{i}" for i in range(20)]
        for doc_id in ids:
            await sql_store.add(PERFORMERS, {"status": "pending", "touched": 0}, doc_id=doc_id)

        for round_no in range(1, 6):
            batch = [WriteOp(WriteKind.UPDATE, PERFORMERS, doc_id, {"status": "approved"}) for doc_id in ids]
            batch.append(WriteOp(WriteKind.UPDATE, PERFORMERS, "missing", {"status": "approved"}))

            results = await asyncio.gather(
                sql_store.batch_write(batch),
                *(sql_store.update(PERFORMERS, doc_id, {"touched": round_no}) for doc_id in ids),
                return_exceptions=True,
            )

            assert isinstance(results[0], DocumentMissingError)
            assert results[1:] == [None] * len(ids)

        docs = await sql_store.query(PERFORMERS)
        assert {doc["status"] for doc in docs} == {"pending"}
        assert {doc["touched"] for doc in docs} == {5}


def test_memory_sqlite_uses_static_pool():
    assert isinstance(create_db_engine("sqlite://").pool, StaticPool)
    assert isinstance(create_db_engine("sqlite:///:memory:").pool, StaticPool)


def test_file_sqlite_uses_default_pool(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'cheerboard.db'}")

    assert not isinstance(engine.pool, StaticPool)


@pytest.mark.asyncio
async def test_sqlalchemy_errors_are_transient():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    store = SqlDocumentStore(create_session_factory(engine))

    def stale(session):
        raise StaleDataError("row changed underneath the session")

    with pytest.raises(TransientStoreError):
        await store._run("update", stale)
