"""
SQLAlchemy-backed document store.

Stores every collection in the ``documents`` table (see
cheerboard.models.document). Blocking session work runs in worker threads
so the event loop stays free; each call uses its own session and each
batch runs in a single transaction. SQLite allows one writer at a time, so
sessions against a SQLite engine run one after another.
"""

import asyncio
import threading
import uuid
from contextlib import nullcontext
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from cheerboard.models.document import Document
from cheerboard.store.base import (
    ID_FIELD,
    DocumentMissingError,
    DocumentStore,
    FieldFilter,
    InvalidQueryError,
    TransientStoreError,
    WriteKind,
    WriteOp,
    validate_filters,
)
from cheerboard.utils.logging_config import get_logger


logger = get_logger("store")

T = TypeVar("T")


def _json_field(field: str, value: Any):
    """Typed JSON accessor matching the Python type of the comparison value."""
    element = Document.data[field]
    if isinstance(value, bool):
        return element.as_boolean()
    if isinstance(value, int):
        return element.as_integer()
    if isinstance(value, float):
        return element.as_float()
    return element.as_string()


def _filter_clause(f: FieldFilter):
    if f.field == ID_FIELD:
        column = Document.doc_id
        return column.in_(list(f.value)) if f.op == "in" else column == f.value

    if f.op == "in":
        values = list(f.value)
        if not values:
            return Document.doc_id.in_([])
        return _json_field(f.field, values[0]).in_(values)
    return _json_field(f.field, f.value) == f.value


class SqlDocumentStore(DocumentStore):
    """
    Document store over a SQLAlchemy session factory.

    Usage:
        >>> engine = create_db_engine("sqlite:///cheerboard.db")
        >>> init_db(engine)
        >>> store = SqlDocumentStore(create_session_factory(engine))

    Ordering uses the string form of the JSON field, which matches the
    stored ISO-8601 timestamps and text fields.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        bind = session_factory.kw.get("bind")
        self._lock = threading.Lock() if bind is not None and bind.dialect.name == "sqlite" else None

    async def _run(self, operation: str, fn: Callable[[Session], T]) -> T:
        """Run ``fn`` with a fresh session in a worker thread, translating driver errors."""

        def work() -> T:
            with self._lock or nullcontext():
                with self._session_factory() as session:
                    try:
                        result = fn(session)
                        session.commit()
                        return result
                    except BaseException:
                        session.rollback()
                        raise

        try:
            return await asyncio.to_thread(work)
        except IntegrityError as e:
            raise InvalidQueryError(f"{operation} violates a constraint: {e.orig}") from e
        except SQLAlchemyError as e:
            logger.warning(f"Transient store failure during {operation}: {e}")
            raise TransientStoreError(str(e)) from e

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        def fn(session: Session):
            row = session.get(Document, (collection, doc_id))
            return row.to_dict() if row else None

        return await self._run("get", fn)

    async def add(
        self,
        collection: str,
        data: Dict[str, Any],
        doc_id: Optional[str] = None,
    ) -> str:
        new_id = doc_id or uuid.uuid4().hex
        body = {k: v for k, v in data.items() if k != ID_FIELD}

        def fn(session: Session):
            if session.get(Document, (collection, new_id)) is not None:
                raise InvalidQueryError(f"Document {collection}/{new_id} already exists")
            session.add(Document(collection=collection, doc_id=new_id, data=body))
            return new_id

        return await self._run("add", fn)

    async def update(self, collection: str, doc_id: str, patch: Dict[str, Any]) -> None:
        def fn(session: Session):
            self._merge(session, collection, doc_id, patch)

        await self._run("update", fn)

    async def delete(self, collection: str, doc_id: str) -> None:
        def fn(session: Session):
            row = session.get(Document, (collection, doc_id))
            if row is None:
                raise DocumentMissingError(collection, doc_id)
            session.delete(row)

        await self._run("delete", fn)

    async def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        validate_filters(filters)

        # Array containment has no portable JSON operator; it runs on loaded rows
        sql_filters = [f for f in filters if f.op != "contains"]
        row_filters = [f for f in filters if f.op == "contains"]

        stmt = select(Document).where(Document.collection == collection)
        for f in sql_filters:
            stmt = stmt.where(_filter_clause(f))
        if order_by:
            column = Document.doc_id if order_by == ID_FIELD else Document.data[order_by].as_string()
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None and not row_filters:
            stmt = stmt.limit(limit)

        def fn(session: Session):
            docs = [row.to_dict() for row in session.scalars(stmt)]
            if row_filters:
                docs = [
                    doc for doc in docs
                    if all(f.matches(doc[ID_FIELD], doc) for f in row_filters)
                ]
                if limit is not None:
                    docs = docs[:limit]
            return docs

        return await self._run("query", fn)

    async def batch_write(self, ops: Sequence[WriteOp]) -> None:
        def fn(session: Session):
            for op in ops:
                body = {k: v for k, v in op.data.items() if k != ID_FIELD}
                if op.kind == WriteKind.SET:
                    row = session.get(Document, (op.collection, op.doc_id))
                    if row is None:
                        session.add(Document(collection=op.collection, doc_id=op.doc_id, data=body))
                    else:
                        row.data = body
                elif op.kind == WriteKind.UPDATE:
                    self._merge(session, op.collection, op.doc_id, body)
                elif op.kind == WriteKind.DELETE:
                    row = session.get(Document, (op.collection, op.doc_id))
                    if row is None:
                        raise DocumentMissingError(op.collection, op.doc_id)
                    session.delete(row)
                else:
                    raise InvalidQueryError(f"Unknown write kind '{op.kind}'")
                session.flush()

        await self._run("batch_write", fn)
        logger.debug(f"Committed batch of {len(ops)} writes")

    @staticmethod
    def _merge(session: Session, collection: str, doc_id: str, patch: Dict[str, Any]) -> None:
        row = session.get(Document, (collection, doc_id))
        if row is None:
            raise DocumentMissingError(collection, doc_id)
        merged = dict(row.data or {})
        merged.update({k: v for k, v in patch.items() if k != ID_FIELD})
        # Plain JSON columns are not mutation-tracked; assign a new dict
        row.data = merged

    async def close(self) -> None:
        bind = self._session_factory.kw.get("bind")
        if bind is not None:
            await asyncio.to_thread(bind.dispose)
