"""
Service layer for business logic.

Service classes live in their own modules (performer_service,
event_service, favorite_service, submission_service, moderation,
crossref_service) and are imported from there; this package only
re-exports the error taxonomy shared by all of them.
"""

from cheerboard.services.exceptions import (
    ServiceError,
    NotFoundError,
    PermissionDeniedError,
    InvalidTransitionError,
    ConflictError,
    ValidationError,
    StoreUnavailableError,
)

__all__ = [
    "ServiceError",
    "NotFoundError",
    "PermissionDeniedError",
    "InvalidTransitionError",
    "ConflictError",
    "ValidationError",
    "StoreUnavailableError",
]
