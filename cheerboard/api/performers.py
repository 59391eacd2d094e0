"""
Performers API endpoints.

Provides:
- Public performer list (search, birthday week, sorting, pagination)
- Pending review queue (administrators)
- Performer details, submission and editing
- Review, batch review and resubmission
- Deletion (blocked while any support event references the performer)

Design:
- Services are built per request from shared application state
- Service errors propagate to the handlers registered in cheerboard.main,
  which map them to HTTP status codes
- All endpoints use GUID format (prf_xxx) for identifiers
"""

from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from cheerboard.api.dependencies import get_moderation_engine, get_performer_service
from cheerboard.middleware.auth import UserContext, get_optional_user_context, get_user_context
from cheerboard.schemas.common import BatchReviewRequest, BatchReviewResponse, ReviewRequest
from cheerboard.schemas.performer import (
    Performer,
    PerformerCreate,
    PerformerListResponse,
    PerformerQuery,
    PerformerUpdate,
)
from cheerboard.services.moderation import ModerationEngine
from cheerboard.services.performer_service import PerformerService
from cheerboard.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(
    prefix="/performers",
    tags=["Performers"],
)


# ============================================================================
# API Endpoints
# ============================================================================


@router.get(
    "",
    response_model=PerformerListResponse,
    summary="List performers",
    description="List performers with search, birthday-week filter, sorting and pagination",
)
async def list_performers(
    query: Annotated[PerformerQuery, Query()],
    ctx: Optional[UserContext] = Depends(get_optional_user_context),
    performer_service: PerformerService = Depends(get_performer_service),
) -> PerformerListResponse:
    """
    List performers.

    Approved performers are public. Other statuses require an administrator,
    or the creator when ``created_by`` names the caller.

    Example:
        GET /api/performers?search=mina&limit=10
        GET /api/performers?birthday_week_start=2024-03-10&birthday_week_end=2024-03-16
        GET /api/performers?status=rejected&created_by=user-1
    """
    result = await performer_service.list_performers(query, ctx)
    logger.info(
        f"Listed {len(result.items)} performers",
        extra={"total": result.pagination.total, "status": query.status, "search": query.search},
    )
    return result


@router.get(
    "/pending",
    response_model=List[Performer],
    summary="List pending performers",
    description="Review queue, newest first (administrators only)",
)
async def list_pending_performers(
    ctx: UserContext = Depends(get_user_context),
    performer_service: PerformerService = Depends(get_performer_service),
) -> List[Performer]:
    return await performer_service.list_pending(ctx)


@router.post(
    "",
    response_model=Performer,
    status_code=status.HTTP_201_CREATED,
    summary="Submit performer",
    description="Submit a new performer for review",
)
async def create_performer(
    performer: PerformerCreate,
    ctx: UserContext = Depends(get_user_context),
    performer_service: PerformerService = Depends(get_performer_service),
) -> Performer:
    """
    Submit a performer. New performers start as pending.

    Example:
        POST /api/performers
        {
          "stage_name": "Mina",
          "stage_name_zh": "米娜",
          "group_names": ["Rakuten Girls"],
          "birthday": "1999-03-12"
        }
    """
    return await performer_service.create_performer(performer, ctx)


@router.post(
    "/batch-review",
    response_model=BatchReviewResponse,
    summary="Batch review performers",
    description="Review up to 500 performers in one atomic write (administrators only)",
)
async def batch_review_performers(
    request: BatchReviewRequest,
    ctx: UserContext = Depends(get_user_context),
    engine: ModerationEngine = Depends(get_moderation_engine),
) -> BatchReviewResponse:
    ids = await engine.batch_review_performers(request.items, ctx)
    return BatchReviewResponse(updated=len(ids), ids=ids)


@router.get(
    "/{performer_id}",
    response_model=Performer,
    summary="Get performer",
    description="Get a single performer by GUID (e.g., prf_01hgw...)",
)
async def get_performer(
    performer_id: str,
    ctx: Optional[UserContext] = Depends(get_optional_user_context),
    performer_service: PerformerService = Depends(get_performer_service),
) -> Performer:
    """
    Get performer details.

    Non-approved performers are visible only to administrators and their
    creator; everyone else gets 404.
    """
    return await performer_service.get_performer(performer_id, ctx)


@router.put(
    "/{performer_id}",
    response_model=Performer,
    summary="Edit performer",
    description="Edit descriptive fields (creator while pending/rejected, or administrator)",
)
async def update_performer(
    performer_id: str,
    performer: PerformerUpdate,
    ctx: UserContext = Depends(get_user_context),
    performer_service: PerformerService = Depends(get_performer_service),
) -> Performer:
    return await performer_service.update_performer(performer_id, performer, ctx)


@router.patch(
    "/{performer_id}/review",
    response_model=Performer,
    summary="Review performer",
    description="Approve, reject or mark a performer as a duplicate (administrators only)",
)
async def review_performer(
    performer_id: str,
    review: ReviewRequest,
    ctx: UserContext = Depends(get_user_context),
    engine: ModerationEngine = Depends(get_moderation_engine),
) -> Performer:
    """
    Review a performer.

    Example:
        PATCH /api/performers/prf_01hgw.../review
        {"status": "rejected", "reason": "Not a cheerleader"}
    """
    return await engine.review_performer(
        performer_id, review.status, ctx, review.reason, review.admin_update
    )


@router.patch(
    "/{performer_id}/resubmit",
    response_model=Performer,
    summary="Resubmit performer",
    description="Send a rejected performer back to review (creator only)",
)
async def resubmit_performer(
    performer_id: str,
    ctx: UserContext = Depends(get_user_context),
    engine: ModerationEngine = Depends(get_moderation_engine),
) -> Performer:
    return await engine.resubmit_performer(performer_id, ctx)


@router.delete(
    "/{performer_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete performer",
    description="Delete a performer no support event references (administrators only)",
)
async def delete_performer(
    performer_id: str,
    ctx: UserContext = Depends(get_user_context),
    performer_service: PerformerService = Depends(get_performer_service),
) -> Response:
    """
    Delete a performer.

    Raises:
        409 Conflict: If any support event still references the performer
    """
    await performer_service.delete_performer(performer_id, ctx)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
