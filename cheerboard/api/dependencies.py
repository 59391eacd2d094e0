"""
FastAPI dependencies building services from application state.

The cache, store gateway, settings and clock are created once in the
application lifespan (see cheerboard.main) and shared by every request;
services are cheap per-request wrappers around them.
"""

from fastapi import Depends, Request

from cheerboard.config.settings import AppSettings
from cheerboard.services.crossref_service import CrossReferenceMaintainer
from cheerboard.services.event_service import EventService
from cheerboard.services.favorite_service import FavoriteService
from cheerboard.services.moderation import ModerationEngine
from cheerboard.services.performer_service import PerformerService
from cheerboard.services.submission_service import SubmissionService
from cheerboard.store import StoreGateway
from cheerboard.utils.cache import Clock, MemoryCache


def get_app_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def get_cache(request: Request) -> MemoryCache:
    return request.app.state.cache


def get_gateway(request: Request) -> StoreGateway:
    return request.app.state.gateway


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_crossref(
    gateway: StoreGateway = Depends(get_gateway),
    cache: MemoryCache = Depends(get_cache),
    settings: AppSettings = Depends(get_app_settings),
    clock: Clock = Depends(get_clock),
) -> CrossReferenceMaintainer:
    """Create CrossReferenceMaintainer over the shared gateway and cache."""
    return CrossReferenceMaintainer(
        gateway,
        cache,
        chunk_size=settings.membership_chunk_size,
        batch_write_limit=settings.batch_write_limit,
        clock=clock,
    )


def get_moderation_engine(
    gateway: StoreGateway = Depends(get_gateway),
    cache: MemoryCache = Depends(get_cache),
    crossref: CrossReferenceMaintainer = Depends(get_crossref),
    settings: AppSettings = Depends(get_app_settings),
    clock: Clock = Depends(get_clock),
) -> ModerationEngine:
    """Create ModerationEngine instance."""
    return ModerationEngine(
        gateway,
        cache,
        crossref,
        batch_write_limit=settings.batch_write_limit,
        chunk_size=settings.membership_chunk_size,
        clock=clock,
    )


def get_performer_service(
    gateway: StoreGateway = Depends(get_gateway),
    cache: MemoryCache = Depends(get_cache),
    settings: AppSettings = Depends(get_app_settings),
    clock: Clock = Depends(get_clock),
) -> PerformerService:
    """Create PerformerService instance."""
    return PerformerService(gateway, cache, settings=settings, clock=clock)


def get_favorite_service(
    gateway: StoreGateway = Depends(get_gateway),
    cache: MemoryCache = Depends(get_cache),
    settings: AppSettings = Depends(get_app_settings),
    clock: Clock = Depends(get_clock),
) -> FavoriteService:
    """Create FavoriteService instance."""
    return FavoriteService(gateway, cache, settings=settings, clock=clock)


def get_event_service(
    gateway: StoreGateway = Depends(get_gateway),
    cache: MemoryCache = Depends(get_cache),
    crossref: CrossReferenceMaintainer = Depends(get_crossref),
    favorites: FavoriteService = Depends(get_favorite_service),
    settings: AppSettings = Depends(get_app_settings),
    clock: Clock = Depends(get_clock),
) -> EventService:
    """Create EventService instance (deletes also clear the event's favorites)."""
    return EventService(gateway, cache, crossref, favorites, settings=settings, clock=clock)


def get_submission_service(
    gateway: StoreGateway = Depends(get_gateway),
) -> SubmissionService:
    return SubmissionService(gateway)
