"""
Database connection and session management.

This module provides SQLAlchemy engine configuration for the SQL-backed
document store (SQLite for single-node deployments, PostgreSQL otherwise).
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


def is_memory_sqlite(database_url: str) -> bool:
    """True for ``sqlite://`` and ``sqlite:///:memory:`` URLs."""
    url = make_url(database_url)
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def create_db_engine(database_url: str) -> Engine:
    """
    Create a SQLAlchemy engine for the given URL.

    An in-memory SQLite database lives inside one connection, so it gets a
    StaticPool shared across worker threads. File-backed SQLite uses the
    default pool. Other databases get a sized connection pool.

    Args:
        database_url: SQLAlchemy database URL

    Returns:
        Configured Engine
    """
    if database_url.startswith("sqlite"):
        # SQLite doesn't support pool_size, max_overflow, or pool_recycle
        pool_args = {"poolclass": StaticPool} if is_memory_sqlite(database_url) else {}
        return create_engine(
            database_url,
            connect_args={'check_same_thread': False},
            echo=False,
            future=True,
            **pool_args
        )

    return create_engine(
        database_url,
        pool_size=20,          # Maximum connections in pool
        max_overflow=10,       # Additional connections beyond pool_size
        pool_pre_ping=True,    # Verify connections before checkout
        pool_recycle=3600,     # Recycle connections after 1 hour
        echo=False,
        future=True
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create the session factory used by SqlDocumentStore."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        expire_on_commit=False,
        future=True
    )


def init_db(engine: Engine) -> None:
    """
    Create the document store tables if they do not exist.

    Called by ``cheerboard init-db`` and on startup of the SQL store.
    """
    from cheerboard.models import Base
    Base.metadata.create_all(bind=engine)
