"""
SQLAlchemy models for the SQL-backed document store.

This module provides the declarative base class and imports all models
to ensure they are registered with SQLAlchemy's metadata.
"""

from sqlalchemy.orm import declarative_base

# Create the declarative base class
# All models will inherit from this Base class
Base = declarative_base()


# Import all models here so they are registered with Base.metadata
from cheerboard.models.document import Document

__all__ = [
    "Base",
    "Document",
]
