"""
Shared schemas: moderation status enums, pagination and review requests.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Status Enums
# ============================================================================


class PerformerStatus(str, Enum):
    """Moderation status of a performer."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXISTS = "exists"


class EventStatus(str, Enum):
    """Moderation status of a support event."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReviewTarget(str, Enum):
    """Any status a reviewer can name; which ones are legal depends on the entity."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXISTS = "exists"


# Status filter value selecting every moderation status
STATUS_ALL = "all"


# ============================================================================
# Pagination
# ============================================================================


class Pagination(BaseModel):
    """
    Page metadata of a list response.

    total and total_pages describe the filtered set before slicing.
    """

    page: int = Field(..., ge=1, description="1-based page number")
    limit: int = Field(..., ge=1, description="Page size after clamping")
    total: int = Field(..., ge=0, description="Number of matching items")
    total_pages: int = Field(..., ge=0, description="ceil(total / limit)")


# ============================================================================
# Review Requests
# ============================================================================


class PerformerAdminUpdate(BaseModel):
    """Auxiliary fields an administrator may set while approving a performer."""

    group_names: Optional[List[str]] = Field(
        default=None,
        max_length=5,
        description="Replacement group names (max 5)",
    )

    model_config = ConfigDict(extra="forbid")


class ReviewRequest(BaseModel):
    """
    Administrator review of a single record.

    Example:
        >>> ReviewRequest(status="rejected", reason="Duplicate of an existing event")
    """

    status: ReviewTarget = Field(..., description="Target moderation status")
    reason: Optional[str] = Field(
        default=None,
        max_length=500,
        description="Rejection reason (kept only when rejecting)",
    )
    admin_update: Optional[PerformerAdminUpdate] = Field(
        default=None,
        description="Performer approval only: auxiliary admin fields",
    )


class BatchReviewItem(ReviewRequest):
    """One item of a batch review."""

    id: str = Field(..., description="Performer or event id")


class BatchReviewRequest(BaseModel):
    """Batch review applied as one atomic write (max 500 items)."""

    items: List[BatchReviewItem] = Field(..., min_length=1, max_length=500)


class BatchReviewResponse(BaseModel):
    updated: int = Field(..., ge=0, description="Number of records written")
    ids: List[str] = Field(default_factory=list)
