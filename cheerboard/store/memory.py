"""
In-memory document store.

Process-local implementation of DocumentStore used by development servers
(``memory://``) and the test suite. Documents are deep-copied on the way in
and out so callers never share state with the store.
"""

import copy
import uuid
from typing import Any, Dict, List, Optional, Sequence

from cheerboard.store.base import (
    ID_FIELD,
    DocumentMissingError,
    DocumentStore,
    FieldFilter,
    InvalidQueryError,
    WriteKind,
    WriteOp,
    validate_filters,
)


def _sort_key(value: Any):
    # None sorts first, then values of the same type compare naturally
    return (value is not None, value if value is not None else 0)


class InMemoryDocumentStore(DocumentStore):
    """
    Dict-of-dicts document store.

    Usage:
        >>> store = InMemoryDocumentStore()
        >>> doc_id = await store.add("performers", {"stage_name": "Mina"})
        >>> await store.get("performers", doc_id)
    """

    def __init__(self):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def _collection(self, name: str) -> Dict[str, Dict[str, Any]]:
        return self._collections.setdefault(name, {})

    @staticmethod
    def _export(doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        doc = copy.deepcopy(data)
        doc[ID_FIELD] = doc_id
        return doc

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        data = self._collection(collection).get(doc_id)
        if data is None:
            return None
        return self._export(doc_id, data)

    async def add(
        self,
        collection: str,
        data: Dict[str, Any],
        doc_id: Optional[str] = None,
    ) -> str:
        docs = self._collection(collection)
        doc_id = doc_id or uuid.uuid4().hex
        if doc_id in docs:
            raise InvalidQueryError(f"Document {collection}/{doc_id} already exists")
        body = copy.deepcopy(data)
        body.pop(ID_FIELD, None)
        docs[doc_id] = body
        return doc_id

    async def update(self, collection: str, doc_id: str, patch: Dict[str, Any]) -> None:
        docs = self._collection(collection)
        if doc_id not in docs:
            raise DocumentMissingError(collection, doc_id)
        body = copy.deepcopy(patch)
        body.pop(ID_FIELD, None)
        docs[doc_id].update(body)

    async def delete(self, collection: str, doc_id: str) -> None:
        docs = self._collection(collection)
        if doc_id not in docs:
            raise DocumentMissingError(collection, doc_id)
        del docs[doc_id]

    async def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        validate_filters(filters)
        results = [
            self._export(doc_id, data)
            for doc_id, data in self._collection(collection).items()
            if all(f.matches(doc_id, data) for f in filters)
        ]
        if order_by:
            results.sort(key=lambda doc: _sort_key(doc.get(order_by)), reverse=descending)
        if limit is not None:
            results = results[:limit]
        return results

    async def batch_write(self, ops: Sequence[WriteOp]) -> None:
        # Ops apply to a staged copy that replaces the live state only if all succeed
        staged = {name: dict(docs) for name, docs in self._collections.items()}
        for op in ops:
            docs = staged.setdefault(op.collection, {})
            body = copy.deepcopy(op.data)
            body.pop(ID_FIELD, None)
            if op.kind == WriteKind.SET:
                docs[op.doc_id] = body
            elif op.kind == WriteKind.UPDATE:
                if op.doc_id not in docs:
                    raise DocumentMissingError(op.collection, op.doc_id)
                merged = dict(docs[op.doc_id])
                merged.update(body)
                docs[op.doc_id] = merged
            elif op.kind == WriteKind.DELETE:
                if op.doc_id not in docs:
                    raise DocumentMissingError(op.collection, op.doc_id)
                del docs[op.doc_id]
            else:
                raise InvalidQueryError(f"Unknown write kind '{op.kind}'")
        self._collections = staged
