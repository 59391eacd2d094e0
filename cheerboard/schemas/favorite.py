"""
Pydantic schemas for favorites and the submissions summary.
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from cheerboard.schemas.common import Pagination
from cheerboard.schemas.event import SupportEvent
from cheerboard.schemas.performer import Performer


# ============================================================================
# Favorites
# ============================================================================


class Favorite(BaseModel):
    """Favorite document as stored in the ``favorites`` collection."""

    id: str
    user_id: str
    event_id: str
    created_at: datetime

    def to_document(self) -> dict:
        return self.model_dump(mode="json", exclude={"id"})


class FavoriteCreate(BaseModel):
    event_id: str = Field(..., min_length=1)


class FavoriteCheckResponse(BaseModel):
    event_id: str
    is_favorited: bool


class FavoriteCheckBatchRequest(BaseModel):
    event_ids: List[str] = Field(..., max_length=500)


class FavoriteCheckBatchResponse(BaseModel):
    favorites: Dict[str, bool] = Field(
        ..., description="Requested event id -> favorited flag"
    )


FavoriteStatusFilter = Literal["all", "active", "upcoming", "ended", "not_ended"]


class FavoriteQuery(BaseModel):
    """Filter, sort and page parameters of a user's favorite list."""

    status: FavoriteStatusFilter = "not_ended"
    performer_ids: Optional[str] = Field(
        default=None, description="Comma-separated performer ids; any match keeps the event"
    )
    sort_by: Literal["favorited_at", "start_time"] = "favorited_at"
    sort_order: Literal["asc", "desc"] = "desc"
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1)

    @field_validator("performer_ids")
    @classmethod
    def normalize_performer_ids(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        ids = [p.strip() for p in v.split(",") if p.strip()]
        return ",".join(ids) or None

    @property
    def performer_id_list(self) -> List[str]:
        return self.performer_ids.split(",") if self.performer_ids else []


class FavoriteEventItem(BaseModel):
    """A favorited event joined with its favorite record."""

    favorite_id: str
    favorited_at: datetime
    event: SupportEvent


class FavoriteListResponse(BaseModel):
    items: List[FavoriteEventItem]
    pagination: Pagination


# ============================================================================
# Submissions
# ============================================================================


class SubmissionCounts(BaseModel):
    total_performers: int = 0
    total_events: int = 0
    pending_performers: int = 0
    pending_events: int = 0
    approved_performers: int = 0
    approved_events: int = 0


class SubmissionSummary(BaseModel):
    """A user's own performers and events, newest first."""

    performers: List[Performer]
    events: List[SupportEvent]
    counts: SubmissionCounts
