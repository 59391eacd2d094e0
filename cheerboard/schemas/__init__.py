"""
Pydantic schemas for stored documents and API request/response validation.
"""

from cheerboard.schemas.common import (
    BatchReviewItem,
    BatchReviewRequest,
    BatchReviewResponse,
    EventStatus,
    Pagination,
    PerformerAdminUpdate,
    PerformerStatus,
    ReviewRequest,
    ReviewTarget,
)
from cheerboard.schemas.event import (
    EventCreate,
    EventListResponse,
    EventQuery,
    EventUpdate,
    MapQuery,
    MapResponse,
    SupportEvent,
)
from cheerboard.schemas.favorite import (
    Favorite,
    FavoriteListResponse,
    FavoriteQuery,
    SubmissionSummary,
)
from cheerboard.schemas.performer import (
    Performer,
    PerformerCreate,
    PerformerListResponse,
    PerformerQuery,
    PerformerUpdate,
)

__all__ = [
    "BatchReviewItem",
    "BatchReviewRequest",
    "BatchReviewResponse",
    "EventStatus",
    "Pagination",
    "PerformerAdminUpdate",
    "PerformerStatus",
    "ReviewRequest",
    "ReviewTarget",
    "EventCreate",
    "EventListResponse",
    "EventQuery",
    "EventUpdate",
    "MapQuery",
    "MapResponse",
    "SupportEvent",
    "Favorite",
    "FavoriteListResponse",
    "FavoriteQuery",
    "SubmissionSummary",
    "Performer",
    "PerformerCreate",
    "PerformerListResponse",
    "PerformerQuery",
    "PerformerUpdate",
]
