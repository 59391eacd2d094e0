"""
Pydantic schemas for support events.

Provides data validation and serialization for:
- Stored support event documents (SupportEvent) and embedded structures
- Event creation and edit requests
- Event list and map queries and responses

Design:
- Performers are embedded as snapshots taken at creation time
- performer_ids is derived from the snapshots and stored for membership queries
- Coordinates are required on input; stored documents with malformed
  coordinates load with coordinates=None
"""

from datetime import datetime, timezone
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from cheerboard.schemas.common import EventStatus, Pagination


MAX_EVENT_PERFORMERS = 10


def _as_utc(v: datetime) -> datetime:
    # Naive datetimes are taken as UTC
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


# ============================================================================
# Embedded Schemas
# ============================================================================


class PerformerSnapshot(BaseModel):
    """Performer data copied onto an event at creation."""

    id: str = Field(..., description="Performer GUID (prf_xxx)")
    name: str = Field(..., description="Stage name at snapshot time")
    profile_image: Optional[str] = None


class Coordinates(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class LocationInput(BaseModel):
    """Event location as submitted; coordinates are mandatory."""

    name: str = Field(..., min_length=1, max_length=200)
    address: str = Field(..., min_length=1, max_length=500)
    coordinates: Coordinates


class Location(BaseModel):
    """Event location as stored."""

    name: str
    address: str = ""
    coordinates: Optional[Coordinates] = None

    @field_validator("coordinates", mode="before")
    @classmethod
    def drop_malformed_coordinates(cls, v: Any) -> Any:
        """Map missing or non-numeric coordinates to None instead of failing the load."""
        if v is None or isinstance(v, Coordinates):
            return v
        if not isinstance(v, dict):
            return None
        lat, lng = v.get("lat"), v.get("lng")
        for value in (lat, lng):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return None
        if not (-90 <= lat <= 90 and -180 <= lng <= 180):
            return None
        return {"lat": float(lat), "lng": float(lng)}


class Schedule(BaseModel):
    """Event time range (aware UTC)."""

    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def normalize_timezone(cls, v: datetime) -> datetime:
        return _as_utc(v)

    @model_validator(mode="after")
    def validate_range(self) -> "Schedule":
        if self.end < self.start:
            raise ValueError("Schedule end must not be before start")
        return self


class SocialMedia(BaseModel):
    instagram: Optional[str] = Field(default=None, max_length=200)
    x: Optional[str] = Field(default=None, max_length=200)
    threads: Optional[str] = Field(default=None, max_length=200)

    def has_any(self) -> bool:
        return any((self.instagram, self.x, self.threads))


# ============================================================================
# Stored Document
# ============================================================================


class SupportEvent(BaseModel):
    """
    Support event document as stored in the ``support_events`` collection.

    Attributes:
        id: Event GUID (evt_xxx)
        performers: Ordered performer snapshots (1-10)
        title: Event title
        description: Event description
        location: Venue name, address and coordinates
        schedule: Start/end instants
        social_media: Organizer handles
        main_image: Optional main image reference
        detail_images: Additional image references
        status: Moderation status
        rejected_reason: Set only while rejected
        created_by: Submitting user id
    """

    id: str
    performers: List[PerformerSnapshot]
    title: str
    description: str = ""
    location: Location
    schedule: Schedule
    social_media: SocialMedia = Field(default_factory=SocialMedia)
    main_image: Optional[str] = None
    detail_images: List[str] = Field(default_factory=list)
    status: EventStatus = EventStatus.PENDING
    rejected_reason: Optional[str] = None
    created_by: str
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def performer_ids(self) -> List[str]:
        return [p.id for p in self.performers]

    def is_ended(self, now: datetime) -> bool:
        return self.schedule.end < now

    def is_started(self, now: datetime) -> bool:
        return self.schedule.start <= now

    def to_document(self) -> dict:
        """Serialize for storage; performer_ids is kept for membership queries."""
        return self.model_dump(mode="json", exclude={"id"})


# ============================================================================
# Request Schemas
# ============================================================================


def _validate_performer_ids(v: Optional[List[str]]) -> Optional[List[str]]:
    if v is None:
        return None
    unique = list(dict.fromkeys(v))
    if not 1 <= len(unique) <= MAX_EVENT_PERFORMERS:
        raise ValueError(f"An event needs 1 to {MAX_EVENT_PERFORMERS} distinct performers")
    return unique


class EventCreate(BaseModel):
    """
    Schema for submitting a new support event.

    Every performer id must reference an approved performer; the service
    copies their snapshot onto the event.
    """

    performer_ids: List[str] = Field(..., description="Approved performer ids (1-10)")
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=5000)
    location: LocationInput
    schedule: Schedule
    social_media: SocialMedia
    main_image: Optional[str] = Field(default=None, max_length=1000)
    detail_images: List[str] = Field(default_factory=list, max_length=10)

    @field_validator("performer_ids")
    @classmethod
    def validate_performer_ids(cls, v: List[str]) -> List[str]:
        return _validate_performer_ids(v)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Title cannot be empty or whitespace")
        return v.strip()

    @field_validator("social_media")
    @classmethod
    def validate_social_media(cls, v: SocialMedia) -> SocialMedia:
        if not v.has_any():
            raise ValueError("At least one social media handle is required")
        return v

    model_config = {
        "json_schema_extra": {
            "example": {
                "performer_ids": ["prf_01hgw2bbg0000000000000001"],
                "title": "Birthday cafe",
                "description": "Cup sleeves and photo cards",
                "location": {
                    "name": "Cafe Lumi",
                    "address": "No. 1, Section 1, Taipei",
                    "coordinates": {"lat": 25.04, "lng": 121.56},
                },
                "schedule": {"start": "2026-03-01T02:00:00Z", "end": "2026-03-03T10:00:00Z"},
                "social_media": {"instagram": "cafelumi"},
            }
        }
    }


class EventUpdate(BaseModel):
    """
    Partial edit of a support event.

    Only fields present in the request are written. Unknown fields (including
    status and rejected_reason) are rejected.
    """

    performer_ids: Optional[List[str]] = None
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    location: Optional[LocationInput] = None
    schedule: Optional[Schedule] = None
    social_media: Optional[SocialMedia] = None
    main_image: Optional[str] = Field(default=None, max_length=1000)
    detail_images: Optional[List[str]] = Field(default=None, max_length=10)

    model_config = ConfigDict(extra="forbid")

    @field_validator("performer_ids")
    @classmethod
    def validate_performer_ids(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _validate_performer_ids(v)

    @field_validator("social_media")
    @classmethod
    def validate_social_media(cls, v: Optional[SocialMedia]) -> Optional[SocialMedia]:
        if v is not None and not v.has_any():
            raise ValueError("At least one social media handle is required")
        return v


# ============================================================================
# Query Schemas
# ============================================================================


EventSortField = Literal["title", "start_time", "created_at"]
TimeStatus = Literal["all", "active", "upcoming", "ended", "not_ended"]


class EventQuery(BaseModel):
    """Filter, sort and page parameters of an event list."""

    search: Optional[str] = None
    status: Literal["pending", "approved", "rejected", "all"] = "approved"
    created_by: Optional[str] = None
    performer_id: Optional[str] = None
    region: Optional[str] = Field(default=None, description="Substring of the address")
    time_status: TimeStatus = "all"
    page: int = Field(default=1, ge=1)
    limit: Optional[int] = Field(default=None, ge=1)
    sort_by: EventSortField = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"


class MapQuery(BaseModel):
    """
    Map viewport parameters.

    Either ``bounds`` ("lat1,lng1,lat2,lng2") or ``center`` ("lat,lng") with
    ``zoom`` (0-22) selects the window; without either the whole map is used.
    """

    bounds: Optional[str] = None
    center: Optional[str] = None
    zoom: Optional[int] = None
    status: Optional[Literal["active", "upcoming"]] = None
    search: Optional[str] = None
    performer_id: Optional[str] = None
    region: Optional[str] = None


# ============================================================================
# Response Schemas
# ============================================================================


class EventListResponse(BaseModel):
    items: List[SupportEvent]
    pagination: Pagination


class MapEvent(BaseModel):
    """Projection of an event for map markers."""

    id: str
    title: str
    main_image: Optional[str] = None
    location: Location
    schedule: Schedule
    time_status: Literal["active", "upcoming"]


class MapResponse(BaseModel):
    events: List[MapEvent]
    total: int
