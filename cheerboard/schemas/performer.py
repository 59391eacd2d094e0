"""
Pydantic schemas for performers.

Provides data validation and serialization for:
- Stored performer documents (Performer)
- Performer creation and edit requests
- Performer list queries and responses

Design:
- Performers are created pending and become public once approved
- active_event_ids is maintained by the cross-reference maintainer, never by clients
- PerformerUpdate rejects unknown fields so moderation fields cannot be patched
"""

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from cheerboard.schemas.common import Pagination, PerformerStatus


MAX_GROUP_NAMES = 5


def _clean_group_names(v: Optional[List[str]]) -> Optional[List[str]]:
    if v is None:
        return None
    cleaned = [name.strip() for name in v if name and name.strip()]
    if len(cleaned) > MAX_GROUP_NAMES:
        raise ValueError(f"At most {MAX_GROUP_NAMES} group names are allowed")
    return cleaned


def _strip_optional(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


# ============================================================================
# Stored Document
# ============================================================================


class Performer(BaseModel):
    """
    Performer document as stored in the ``performers`` collection.

    Attributes:
        id: Performer GUID (prf_xxx)
        stage_name: Primary display name
        stage_name_zh: Optional localized name
        real_name: Optional legal name
        group_names: Ordered group names (max 5)
        birthday: Optional birthday; only month/day matter for recurring logic
        profile_image: Optional image reference
        status: Moderation status
        rejected_reason: Set only while rejected
        active_event_ids: Approved, not-ended events featuring this performer
        created_by: Submitting user id
    """

    id: str
    stage_name: str
    stage_name_zh: Optional[str] = None
    real_name: Optional[str] = None
    group_names: List[str] = Field(default_factory=list)
    birthday: Optional[date] = None
    profile_image: Optional[str] = None
    status: PerformerStatus = PerformerStatus.PENDING
    rejected_reason: Optional[str] = None
    active_event_ids: List[str] = Field(default_factory=list)
    created_by: str
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def active_event_count(self) -> int:
        return len(self.active_event_ids)

    def to_document(self) -> dict:
        """Serialize for storage (JSON-safe, without id or derived fields)."""
        return self.model_dump(mode="json", exclude={"id", "active_event_count"})


# ============================================================================
# Request Schemas
# ============================================================================


class PerformerCreate(BaseModel):
    """
    Schema for submitting a new performer.

    Example:
        >>> PerformerCreate(stage_name="Mina", group_names=["Rakuten Girls"])
    """

    stage_name: str = Field(..., min_length=1, max_length=100, description="Primary display name")
    stage_name_zh: Optional[str] = Field(default=None, max_length=100)
    real_name: Optional[str] = Field(default=None, max_length=100)
    group_names: List[str] = Field(default_factory=list, description="Group names (max 5)")
    birthday: Optional[date] = None
    profile_image: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("stage_name")
    @classmethod
    def validate_stage_name(cls, v: str) -> str:
        """Ensure stage name is not just whitespace."""
        if not v.strip():
            raise ValueError("Stage name cannot be empty or whitespace")
        return v.strip()

    @field_validator("stage_name_zh", "real_name", "profile_image")
    @classmethod
    def strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return _strip_optional(v)

    @field_validator("group_names")
    @classmethod
    def validate_group_names(cls, v: List[str]) -> List[str]:
        return _clean_group_names(v)

    model_config = {
        "json_schema_extra": {
            "example": {
                "stage_name": "Mina",
                "stage_name_zh": "米娜",
                "group_names": ["Rakuten Girls"],
                "birthday": "2000-03-24",
            }
        }
    }


class PerformerUpdate(BaseModel):
    """
    Partial edit of a performer's descriptive fields.

    Only fields present in the request are written. Unknown fields (including
    status, rejected_reason and active_event_ids) are rejected.
    """

    stage_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    stage_name_zh: Optional[str] = Field(default=None, max_length=100)
    real_name: Optional[str] = Field(default=None, max_length=100)
    group_names: Optional[List[str]] = None
    birthday: Optional[date] = None
    profile_image: Optional[str] = Field(default=None, max_length=1000)

    model_config = ConfigDict(extra="forbid")

    @field_validator("stage_name")
    @classmethod
    def validate_stage_name(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Stage name cannot be empty or whitespace")
        return v.strip() if v else v

    @field_validator("group_names")
    @classmethod
    def validate_group_names(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_group_names(v)


# ============================================================================
# Query Schemas
# ============================================================================


PerformerSortField = Literal["stage_name", "created_at", "active_event_count"]


class PerformerQuery(BaseModel):
    """
    Filter, sort and page parameters of a performer list.

    ``status`` defaults to approved; any other value (or "all") requires an
    administrator or ``created_by`` equal to the caller.
    """

    search: Optional[str] = Field(default=None, description="Case-insensitive substring")
    status: Literal["pending", "approved", "rejected", "exists", "all"] = "approved"
    created_by: Optional[str] = None
    birthday_week_start: Optional[date] = Field(
        default=None, description="Start of a birthday window (inclusive)"
    )
    birthday_week_end: Optional[date] = Field(
        default=None, description="End of a birthday window (inclusive)"
    )
    page: int = Field(default=1, ge=1)
    limit: Optional[int] = Field(default=None, ge=1, description="Clamped to the page size cap")
    sort_by: PerformerSortField = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"

    @model_validator(mode="after")
    def validate_birthday_week(self) -> "PerformerQuery":
        start, end = self.birthday_week_start, self.birthday_week_end
        if (start is None) != (end is None):
            raise ValueError("birthday_week_start and birthday_week_end must be given together")
        if start and end and end < start:
            raise ValueError("birthday_week_end must not be before birthday_week_start")
        return self


class PerformerListResponse(BaseModel):
    items: List[Performer]
    pagination: Pagination
