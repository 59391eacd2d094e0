"""
In-memory stages of the list query pipeline.

The services fetch the broadest cheap subset from the store (equality
filters only), then run the stages here:

    search -> entity filters -> sort -> paginate

Every stage is a pure function over already-loaded models, so the same
stages serve performer lists, event lists, map windows and favorite lists.
"""

import math
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, TypeVar

from cheerboard.middleware.auth import UserContext
from cheerboard.schemas.common import Pagination, PerformerStatus
from cheerboard.schemas.event import SupportEvent
from cheerboard.schemas.performer import Performer
from cheerboard.services.exceptions import PermissionDeniedError


T = TypeVar("T")


# ============================================================================
# Paging
# ============================================================================


def clamp_page(
    page: Optional[int],
    limit: Optional[int],
    default_limit: int,
    max_limit: int,
) -> Tuple[int, int]:
    """
    Normalize page parameters.

    Returns:
        (page >= 1, 1 <= limit <= max_limit); a missing limit uses the default
    """
    page = max(1, page or 1)
    limit = default_limit if not limit else limit
    return page, max(1, min(limit, max_limit))


def paginate(items: Sequence[T], page: int, limit: int) -> Tuple[List[T], Pagination]:
    """
    Slice ``items`` to ``[(page-1)*limit, page*limit)``.

    Pagination totals describe the whole sequence, so concatenating pages
    1..total_pages reproduces it.
    """
    total = len(items)
    start = (page - 1) * limit
    page_items = list(items[start:start + limit])
    return page_items, Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit) if total else 0,
    )


# ============================================================================
# Visibility
# ============================================================================


def check_list_visibility(
    status: str,
    created_by: Optional[str],
    user: Optional[UserContext],
) -> None:
    """
    Enforce who may list a moderation status.

    Approved lists are public. Any other status (or "all") needs an
    administrator, or a created_by filter equal to the caller.

    Raises:
        PermissionDeniedError: For any other caller
    """
    if status == PerformerStatus.APPROVED.value:
        return
    if user is not None and (user.is_admin or user.owns(created_by)):
        return
    raise PermissionDeniedError(
        f"Listing '{status}' records requires an administrator or your own submissions",
        user_id=user.user_id if user else None,
    )


def is_admin_scope(status: str) -> bool:
    """Queries over non-approved statuses get the short cache TTL."""
    return status != PerformerStatus.APPROVED.value


# ============================================================================
# Search
# ============================================================================


def matches_search(fields: Iterable[Optional[str]], term: Optional[str]) -> bool:
    """Case-insensitive substring match against any non-empty field."""
    if not term:
        return True
    needle = term.strip().casefold()
    if not needle:
        return True
    return any(needle in value.casefold() for value in fields if value)


def performer_search_fields(performer: Performer) -> List[Optional[str]]:
    return [
        performer.stage_name,
        performer.stage_name_zh,
        performer.real_name,
        *performer.group_names,
    ]


def event_search_fields(event: SupportEvent) -> List[Optional[str]]:
    return [
        event.title,
        event.description,
        event.location.name,
        event.location.address,
        *(p.name for p in event.performers),
    ]


# ============================================================================
# Filters
# ============================================================================


def _project_birthday(birthday: date, year: int) -> date:
    # Feb 29 birthdays fall on Feb 28 in common years
    try:
        return birthday.replace(year=year)
    except ValueError:
        return birthday.replace(year=year, day=28)


def in_birthday_week(birthday: Optional[date], start: date, end: date) -> bool:
    """
    Check if a recurring birthday falls inside [start, end].

    The birthday's month/day is projected into every year from ``start`` to
    ``end``, so windows crossing one or more year boundaries match.
    """
    if birthday is None:
        return False
    for year in range(start.year, end.year + 1):
        if start <= _project_birthday(birthday, year) <= end:
            return True
    return False


def matches_region(event: SupportEvent, region: Optional[str]) -> bool:
    """Case-insensitive substring match on the event address."""
    if not region:
        return True
    return region.strip().casefold() in (event.location.address or "").casefold()


def time_status_matches(event: SupportEvent, time_status: str, now: datetime) -> bool:
    """
    Filter by the event's position in time.

    active: started and not ended; upcoming: not started; ended: end passed;
    not_ended: end not passed; all: everything.
    """
    if time_status == "all":
        return True
    if time_status == "active":
        return event.is_started(now) and not event.is_ended(now)
    if time_status == "upcoming":
        return not event.is_started(now)
    if time_status == "ended":
        return event.is_ended(now)
    if time_status == "not_ended":
        return not event.is_ended(now)
    raise ValueError(f"Unknown time status '{time_status}'")


# ============================================================================
# Sorting
# ============================================================================


def _text_key(value: Optional[str]) -> Tuple[str, str]:
    value = value or ""
    return value.casefold(), value


def sort_items(
    items: Iterable[T],
    key: Callable[[T], object],
    descending: bool,
) -> List[T]:
    """Stable sort; equal keys keep their input order in both directions."""
    return sorted(items, key=key, reverse=descending)


PERFORMER_SORT_KEYS = {
    "stage_name": lambda p: _text_key(p.stage_name),
    "created_at": lambda p: p.created_at,
    "active_event_count": lambda p: p.active_event_count,
}

EVENT_SORT_KEYS = {
    "title": lambda e: _text_key(e.title),
    "start_time": lambda e: e.schedule.start,
    "created_at": lambda e: e.created_at,
}


def sort_performers(performers: Iterable[Performer], sort_by: str, sort_order: str) -> List[Performer]:
    return sort_items(performers, PERFORMER_SORT_KEYS[sort_by], sort_order == "desc")


def sort_events(events: Iterable[SupportEvent], sort_by: str, sort_order: str) -> List[SupportEvent]:
    return sort_items(events, EVENT_SORT_KEYS[sort_by], sort_order == "desc")
