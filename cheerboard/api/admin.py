"""
Administrative endpoints: cache inspection and cross-reference repair.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from cheerboard.api.dependencies import get_cache, get_crossref
from cheerboard.middleware.auth import UserContext, require_admin
from cheerboard.services.crossref_service import CrossReferenceMaintainer
from cheerboard.utils.cache import MemoryCache
from cheerboard.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
)


@router.get(
    "/cache/stats",
    summary="Cache statistics",
    description="Number of cached entries and their keys",
)
async def get_cache_stats(
    ctx: UserContext = Depends(require_admin),
    cache: MemoryCache = Depends(get_cache),
) -> Dict[str, Any]:
    return cache.get_stats()


@router.delete(
    "/cache",
    summary="Clear cache",
    description="Drop every cached entry",
)
async def clear_cache(
    ctx: UserContext = Depends(require_admin),
    cache: MemoryCache = Depends(get_cache),
) -> Dict[str, int]:
    cleared = cache.clear()
    logger.info(f"Cache cleared by {ctx.user_id}", extra={"cleared": cleared})
    return {"cleared": cleared}


@router.post(
    "/reconcile",
    summary="Rebuild performer cross-references",
    description="Re-derive every performer's active_event_ids from approved, not-ended events",
)
async def reconcile(
    ctx: UserContext = Depends(require_admin),
    crossref: CrossReferenceMaintainer = Depends(get_crossref),
) -> Dict[str, int]:
    """
    Rebuild active_event_ids.

    Returns:
        Counts of events scanned, performers scanned and performers rewritten
    """
    report = await crossref.rebuild()
    logger.info(f"Reconcile requested by {ctx.user_id}", extra=report.to_dict())
    return report.to_dict()
