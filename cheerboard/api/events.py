"""
Support events API endpoints.

Provides:
- Public event list (search, performer, region and time-status filters)
- Map markers within a bounds or center/zoom window
- Pending review queue (administrators)
- Event details, submission, editing and deletion
- Review, batch review and resubmission

All endpoints use GUID format (evt_xxx) for identifiers.
"""

from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from cheerboard.api.dependencies import get_event_service, get_moderation_engine
from cheerboard.middleware.auth import UserContext, get_optional_user_context, get_user_context
from cheerboard.schemas.common import BatchReviewRequest, BatchReviewResponse, ReviewRequest
from cheerboard.schemas.event import (
    EventCreate,
    EventListResponse,
    EventQuery,
    EventUpdate,
    MapQuery,
    MapResponse,
    SupportEvent,
)
from cheerboard.services.event_service import EventService
from cheerboard.services.moderation import ModerationEngine
from cheerboard.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(
    prefix="/events",
    tags=["Events"],
)


# ============================================================================
# API Endpoints
# ============================================================================


@router.get(
    "",
    response_model=EventListResponse,
    summary="List events",
    description="List support events with filtering, sorting and pagination",
)
async def list_events(
    query: Annotated[EventQuery, Query()],
    ctx: Optional[UserContext] = Depends(get_optional_user_context),
    event_service: EventService = Depends(get_event_service),
) -> EventListResponse:
    """
    List support events.

    Example:
        GET /api/events?search=taipei&limit=2
        GET /api/events?performer_id=prf_01hgw...&time_status=upcoming
        GET /api/events?status=pending  (administrators)
    """
    result = await event_service.list_events(query, ctx)
    logger.info(
        f"Listed {len(result.items)} events",
        extra={"total": result.pagination.total, "status": query.status, "search": query.search},
    )
    return result


@router.get(
    "/map",
    response_model=MapResponse,
    summary="Map markers",
    description="Approved, not-ended events inside a bounds or center/zoom window",
)
async def get_map_data(
    query: Annotated[MapQuery, Query()],
    event_service: EventService = Depends(get_event_service),
) -> MapResponse:
    """
    Get map markers.

    Example:
        GET /api/events/map?bounds=24.9,121.4,25.2,121.7
        GET /api/events/map?center=25.04,121.56&zoom=12&status=active
    """
    return await event_service.get_map_data(query)


@router.get(
    "/pending",
    response_model=List[SupportEvent],
    summary="List pending events",
    description="Review queue, newest first (administrators only)",
)
async def list_pending_events(
    ctx: UserContext = Depends(get_user_context),
    event_service: EventService = Depends(get_event_service),
) -> List[SupportEvent]:
    return await event_service.list_pending(ctx)


@router.post(
    "",
    response_model=SupportEvent,
    status_code=status.HTTP_201_CREATED,
    summary="Submit event",
    description="Submit a support event for review",
)
async def create_event(
    event: EventCreate,
    ctx: UserContext = Depends(get_user_context),
    event_service: EventService = Depends(get_event_service),
) -> SupportEvent:
    """
    Submit a support event. Every referenced performer must be approved.

    Example:
        POST /api/events
        {
          "performer_ids": ["prf_01hgw..."],
          "title": "Birthday cafe",
          "location": {"name": "Cafe", "address": "Taipei", "coordinates": {"lat": 25.04, "lng": 121.56}},
          "schedule": {"start": "2024-05-01T10:00:00Z", "end": "2024-05-03T18:00:00Z"},
          "social_media": {"instagram": "cafe_tw"}
        }
    """
    return await event_service.create_event(event, ctx)


@router.post(
    "/batch-review",
    response_model=BatchReviewResponse,
    summary="Batch review events",
    description="Review up to 500 events in one atomic write (administrators only)",
)
async def batch_review_events(
    request: BatchReviewRequest,
    ctx: UserContext = Depends(get_user_context),
    engine: ModerationEngine = Depends(get_moderation_engine),
) -> BatchReviewResponse:
    ids = await engine.batch_review_events(request.items, ctx)
    return BatchReviewResponse(updated=len(ids), ids=ids)


@router.get(
    "/{event_id}",
    response_model=SupportEvent,
    summary="Get event",
    description="Get a single support event by GUID (e.g., evt_01hgw...)",
)
async def get_event(
    event_id: str,
    ctx: Optional[UserContext] = Depends(get_optional_user_context),
    event_service: EventService = Depends(get_event_service),
) -> SupportEvent:
    return await event_service.get_event(event_id, ctx)


@router.put(
    "/{event_id}",
    response_model=SupportEvent,
    summary="Edit event",
    description="Edit an event (creator while pending/rejected, or administrator)",
)
async def update_event(
    event_id: str,
    event: EventUpdate,
    ctx: UserContext = Depends(get_user_context),
    event_service: EventService = Depends(get_event_service),
) -> SupportEvent:
    return await event_service.update_event(event_id, event, ctx)


@router.patch(
    "/{event_id}/review",
    response_model=SupportEvent,
    summary="Review event",
    description="Approve or reject an event (administrators only)",
)
async def review_event(
    event_id: str,
    review: ReviewRequest,
    ctx: UserContext = Depends(get_user_context),
    engine: ModerationEngine = Depends(get_moderation_engine),
) -> SupportEvent:
    """
    Review an event.

    Approving adds the event to each performer's active_event_ids; moving
    away from approved removes it.
    """
    return await engine.review_event(event_id, review.status, ctx, review.reason)


@router.patch(
    "/{event_id}/resubmit",
    response_model=SupportEvent,
    summary="Resubmit event",
    description="Send a rejected event back to review (creator only)",
)
async def resubmit_event(
    event_id: str,
    ctx: UserContext = Depends(get_user_context),
    engine: ModerationEngine = Depends(get_moderation_engine),
) -> SupportEvent:
    return await engine.resubmit_event(event_id, ctx)


@router.delete(
    "/{event_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete event",
    description="Delete an event and its favorites (creator or administrator)",
)
async def delete_event(
    event_id: str,
    ctx: UserContext = Depends(get_user_context),
    event_service: EventService = Depends(get_event_service),
) -> Response:
    await event_service.delete_event(event_id, ctx)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
