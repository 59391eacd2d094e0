"""
Custom exceptions for the service layer.

Provides the typed error taxonomy of the moderation and query core.
Each exception carries a short human-readable reason; the HTTP layer maps
the exception type to a status code (see cheerboard.main).
"""

from typing import Any, Optional


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(ServiceError):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: Any):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} {identifier} not found")


class PermissionDeniedError(ServiceError):
    """Raised when a role or ownership check fails."""

    def __init__(self, message: str, user_id: Optional[str] = None):
        self.user_id = user_id
        super().__init__(message)


class InvalidTransitionError(ServiceError):
    """Raised when a moderation status change is not allowed."""

    def __init__(self, resource: str, current: str, target: str, message: Optional[str] = None):
        self.resource = resource
        self.current = current
        self.target = target
        super().__init__(
            message or f"Cannot move {resource} from '{current}' to '{target}'"
        )


class ConflictError(ServiceError):
    """Raised when an operation conflicts with existing state."""

    def __init__(self, message: str, references: int = 0):
        self.references = references
        super().__init__(message)


class ValidationError(ServiceError):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class StoreUnavailableError(ServiceError):
    """
    Raised when the document store cannot be reached.

    Surfaces only after the store gateway exhausted its retries; callers
    should treat it as a "try again later" condition.
    """

    def __init__(self, operation: str, attempts: int, last_error: Optional[BaseException] = None):
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {last_error}" if last_error else ""
        super().__init__(
            f"Document store unavailable during '{operation}' after {attempts} attempt(s){detail}"
        )
