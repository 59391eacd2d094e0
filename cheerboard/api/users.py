"""
Current-user API endpoints: submissions summary and favorites.

All routes act on the authenticated caller (``/users/me``).
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from cheerboard.api.dependencies import get_favorite_service, get_submission_service
from cheerboard.middleware.auth import UserContext, get_user_context
from cheerboard.schemas.favorite import (
    Favorite,
    FavoriteCheckBatchRequest,
    FavoriteCheckBatchResponse,
    FavoriteCheckResponse,
    FavoriteCreate,
    FavoriteListResponse,
    FavoriteQuery,
    SubmissionSummary,
)
from cheerboard.services.favorite_service import FavoriteService
from cheerboard.services.submission_service import SubmissionService
from cheerboard.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(
    prefix="/users/me",
    tags=["Users"],
)


# ============================================================================
# Submissions
# ============================================================================


@router.get(
    "/submissions",
    response_model=SubmissionSummary,
    summary="My submissions",
    description="Performers and events the caller submitted, newest first, with counts",
)
async def get_my_submissions(
    ctx: UserContext = Depends(get_user_context),
    submission_service: SubmissionService = Depends(get_submission_service),
) -> SubmissionSummary:
    return await submission_service.get_user_submissions(ctx.user_id)


# ============================================================================
# Favorites
# ============================================================================


@router.get(
    "/favorites",
    response_model=FavoriteListResponse,
    summary="List favorites",
    description="The caller's favorited events with time-status and performer filters",
)
async def list_favorites(
    query: Annotated[FavoriteQuery, Query()],
    ctx: UserContext = Depends(get_user_context),
    favorite_service: FavoriteService = Depends(get_favorite_service),
) -> FavoriteListResponse:
    """
    List favorited events.

    Example:
        GET /api/users/me/favorites?status=active&sort_by=start_time&sort_order=asc
        GET /api/users/me/favorites?performer_ids=prf_01a...,prf_01b...
    """
    return await favorite_service.list_favorites(ctx.user_id, query)


@router.post(
    "/favorites",
    response_model=Favorite,
    status_code=status.HTTP_201_CREATED,
    summary="Add favorite",
)
async def add_favorite(
    favorite: FavoriteCreate,
    ctx: UserContext = Depends(get_user_context),
    favorite_service: FavoriteService = Depends(get_favorite_service),
) -> Favorite:
    return await favorite_service.add_favorite(ctx.user_id, favorite.event_id)


@router.post(
    "/favorites/check-batch",
    response_model=FavoriteCheckBatchResponse,
    summary="Check favorites in batch",
    description="Favorited flag for each requested event id",
)
async def check_favorites_batch(
    request: FavoriteCheckBatchRequest,
    ctx: UserContext = Depends(get_user_context),
    favorite_service: FavoriteService = Depends(get_favorite_service),
) -> FavoriteCheckBatchResponse:
    favorites = await favorite_service.check_batch(ctx.user_id, request.event_ids)
    return FavoriteCheckBatchResponse(favorites=favorites)


@router.get(
    "/favorites/{event_id}/check",
    response_model=FavoriteCheckResponse,
    summary="Check favorite",
)
async def check_favorite(
    event_id: str,
    ctx: UserContext = Depends(get_user_context),
    favorite_service: FavoriteService = Depends(get_favorite_service),
) -> FavoriteCheckResponse:
    is_favorited = await favorite_service.is_favorited(ctx.user_id, event_id)
    return FavoriteCheckResponse(event_id=event_id, is_favorited=is_favorited)


@router.delete(
    "/favorites/{event_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove favorite",
)
async def remove_favorite(
    event_id: str,
    ctx: UserContext = Depends(get_user_context),
    favorite_service: FavoriteService = Depends(get_favorite_service),
) -> Response:
    await favorite_service.remove_favorite(ctx.user_id, event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
