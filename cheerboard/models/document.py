"""
Document model for the SQL-backed document store.

Every collection (performers, support_events, favorites) lives in the single
``documents`` table; a row is one JSON document addressed by
(collection, doc_id).
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Index, String

from cheerboard.models import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(Base):
    """
    Stored JSON document.

    Attributes:
        collection: Collection name (e.g. "performers")
        doc_id: Document id, unique within the collection
        data: Document body (without the id)
        created_at: Row creation timestamp
        updated_at: Last write timestamp

    Indexes:
        - (collection, doc_id) primary key
        - collection (for collection scans)
    """

    __tablename__ = "documents"

    collection = Column(String(64), primary_key=True)
    doc_id = Column(String(64), primary_key=True)
    data = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow
    )

    __table_args__ = (
        Index("ix_documents_collection", "collection"),
    )

    def to_dict(self) -> dict:
        """Return the document body with its id under "id"."""
        doc = dict(self.data or {})
        doc["id"] = self.doc_id
        return doc

    def __repr__(self) -> str:
        return f"<Document({self.collection}/{self.doc_id})>"
