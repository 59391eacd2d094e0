"""
Document store package.

Provides the abstract DocumentStore, its in-memory and SQLAlchemy
implementations, and the StoreGateway that adds timeout and retry.
"""

from cheerboard.store.base import (
    FAVORITES,
    MEMBERSHIP_QUERY_LIMIT,
    PERFORMERS,
    SUPPORT_EVENTS,
    DocumentMissingError,
    DocumentStore,
    FieldFilter,
    InvalidQueryError,
    StoreError,
    TransientStoreError,
    WriteKind,
    WriteOp,
)
from cheerboard.store.gateway import StoreGateway
from cheerboard.store.memory import InMemoryDocumentStore
from cheerboard.store.sql import SqlDocumentStore


def create_store(store_url: str) -> DocumentStore:
    """
    Create a document store from a URL.

    Args:
        store_url: "memory://" or a SQLAlchemy database URL

    Returns:
        InMemoryDocumentStore or SqlDocumentStore (tables created if missing)
    """
    if store_url.startswith("memory://"):
        return InMemoryDocumentStore()

    from cheerboard.db.database import create_db_engine, create_session_factory, init_db

    engine = create_db_engine(store_url)
    init_db(engine)
    return SqlDocumentStore(create_session_factory(engine))


__all__ = [
    "FAVORITES",
    "MEMBERSHIP_QUERY_LIMIT",
    "PERFORMERS",
    "SUPPORT_EVENTS",
    "DocumentMissingError",
    "DocumentStore",
    "FieldFilter",
    "InvalidQueryError",
    "StoreError",
    "TransientStoreError",
    "WriteKind",
    "WriteOp",
    "StoreGateway",
    "InMemoryDocumentStore",
    "SqlDocumentStore",
    "create_store",
]
