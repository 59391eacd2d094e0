"""
Support event service: submission, reads, list and map queries, edits and
deletion.

Design:
- Events are created pending with snapshots of approved performers
- Reads consult the cache first; pending/rejected events are visible only
  to administrators and their creator
- Edits to an approved event that touch its schedule or performers, and
  every deletion, update the performers' active_event_ids and invalidate
  every cached view of the event
- Map queries project approved, not-ended events inside a viewport window
"""

from typing import Dict, List, Optional

from cheerboard.config.settings import AppSettings, get_settings
from cheerboard.middleware.auth import UserContext
from cheerboard.schemas.common import STATUS_ALL, EventStatus, PerformerStatus
from cheerboard.schemas.event import (
    EventCreate,
    EventListResponse,
    EventQuery,
    EventUpdate,
    MapEvent,
    MapQuery,
    MapResponse,
    PerformerSnapshot,
    SupportEvent,
)
from cheerboard.schemas.performer import Performer
from cheerboard.services import cache_keys
from cheerboard.services.crossref_service import CrossReferenceMaintainer
from cheerboard.services.exceptions import (
    NotFoundError,
    PermissionDeniedError,
    ServiceError,
    ValidationError,
)
from cheerboard.services.favorite_service import FavoriteService
from cheerboard.services.geo_utils import parse_window
from cheerboard.services.guid import GuidService
from cheerboard.services.moderation import EntityKind, can_view, ensure_can_edit, require_admin
from cheerboard.services.query_pipeline import (
    check_list_visibility,
    clamp_page,
    event_search_fields,
    is_admin_scope,
    matches_region,
    matches_search,
    paginate,
    sort_events,
    time_status_matches,
)
from cheerboard.store import PERFORMERS, SUPPORT_EVENTS, FieldFilter, StoreGateway
from cheerboard.utils.cache import Clock, MemoryCache, utc_now
from cheerboard.utils.logging_config import get_logger


logger = get_logger("services")


def load_events(docs: List[dict]) -> List[SupportEvent]:
    """Validate stored documents, skipping (and logging) unreadable ones."""
    events = []
    for doc in docs:
        try:
            events.append(SupportEvent.model_validate(doc))
        except ValueError as e:
            logger.warning(f"Skipping unreadable event {doc.get('id')}: {e}")
    return events


class EventService:
    """
    Service for managing support events.

    Usage:
        >>> service = EventService(gateway, cache, crossref, favorites)
        >>> event = await service.create_event(data, user)
        >>> page = await service.list_events(EventQuery(search="taipei", limit=2))
        >>> markers = await service.get_map_data(MapQuery(center="25.04,121.56", zoom=12))
    """

    def __init__(
        self,
        gateway: StoreGateway,
        cache: MemoryCache,
        crossref: CrossReferenceMaintainer,
        favorites: Optional[FavoriteService] = None,
        settings: Optional[AppSettings] = None,
        clock: Clock = utc_now,
    ):
        self.gateway = gateway
        self.cache = cache
        self.crossref = crossref
        self.favorites = favorites
        self.settings = settings or get_settings()
        self.clock = clock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _get_cached(self, event_id: str) -> Optional[SupportEvent]:
        key = cache_keys.event_key(event_id)
        cached, found = self.cache.get(key)
        if found:
            return cached

        doc = await self.gateway.get(SUPPORT_EVENTS, event_id)
        event = SupportEvent.model_validate(doc) if doc else None
        ttl = self.settings.ttl_event if event else self.settings.ttl_event_not_found
        self.cache.set(key, event, ttl)
        return event

    async def get_event(self, event_id: str, user: Optional[UserContext] = None) -> SupportEvent:
        """
        Get an event by id.

        Raises:
            NotFoundError: If the event does not exist or is not visible to the caller
        """
        event = await self._get_cached(event_id)
        if event is None or not can_view(EntityKind.EVENT, event.status, event.created_by, user):
            raise NotFoundError("SupportEvent", event_id)
        return event

    async def _approved_base(self) -> List[SupportEvent]:
        cached, found = self.cache.get(cache_keys.EVENTS_APPROVED)
        if found:
            return cached
        docs = await self.gateway.query(
            SUPPORT_EVENTS, [FieldFilter("status", EventStatus.APPROVED.value)]
        )
        events = sort_events(load_events(docs), "start_time", "asc")
        self.cache.set(cache_keys.EVENTS_APPROVED, events, self.settings.ttl_events_approved)
        return events

    async def _fetch_base(self, status: str, created_by: Optional[str]) -> List[SupportEvent]:
        if status == STATUS_ALL:
            filters = [FieldFilter("created_by", created_by)] if created_by else []
            return load_events(await self.gateway.query(SUPPORT_EVENTS, filters))
        if status == EventStatus.APPROVED.value and created_by is None:
            return await self._approved_base()
        filters = [FieldFilter("status", status)]
        if created_by:
            filters.append(FieldFilter("created_by", created_by))
        return load_events(await self.gateway.query(SUPPORT_EVENTS, filters))

    async def list_events(
        self,
        query: EventQuery,
        user: Optional[UserContext] = None,
    ) -> EventListResponse:
        """
        Filtered, sorted, paginated event list.

        Raises:
            PermissionDeniedError: Non-approved statuses without admin role
                or a created_by equal to the caller
        """
        check_list_visibility(query.status, query.created_by, user)
        page, limit = clamp_page(
            query.page, query.limit, self.settings.default_page_limit, self.settings.max_page_limit
        )

        params = query.model_dump(mode="json")
        params.update(page=page, limit=limit)
        key = cache_keys.event_query_key(params)
        cached, found = self.cache.get(key)
        if found:
            return cached

        now = self.clock()
        events = await self._fetch_base(query.status, query.created_by)
        filtered = [
            e for e in events
            if matches_search(event_search_fields(e), query.search)
            and (query.performer_id is None or query.performer_id in e.performer_ids)
            and matches_region(e, query.region)
            and time_status_matches(e, query.time_status, now)
        ]
        ordered = sort_events(filtered, query.sort_by, query.sort_order)
        items, pagination = paginate(ordered, page, limit)

        result = EventListResponse(items=items, pagination=pagination)
        ttl = (
            self.settings.ttl_event_admin_query
            if is_admin_scope(query.status)
            else self.settings.ttl_event_public_query
        )
        self.cache.set(key, result, ttl)
        return result

    async def list_pending(self, user: UserContext) -> List[SupportEvent]:
        """Administrator review queue (newest first, never cached)."""
        require_admin(user, "view the event review queue")
        docs = await self.gateway.query(
            SUPPORT_EVENTS, [FieldFilter("status", EventStatus.PENDING.value)]
        )
        return sort_events(load_events(docs), "created_at", "desc")

    async def get_map_data(self, query: MapQuery) -> MapResponse:
        """
        Project approved, not-ended events inside a map window.

        Raises:
            ValidationError: If bounds/center/zoom are malformed
        """
        window = parse_window(query.bounds, query.center, query.zoom)

        key = cache_keys.event_map_key(query.model_dump(mode="json"))
        cached, found = self.cache.get(key)
        if found:
            return cached

        now = self.clock()
        markers: List[MapEvent] = []
        for event in await self._approved_base():
            if event.is_ended(now):
                continue
            if query.status and not time_status_matches(event, query.status, now):
                continue
            coordinates = event.location.coordinates
            if coordinates is None:
                logger.warning(f"Event {event.id} has no usable coordinates; left off the map")
                continue
            if window is not None and not window.contains(coordinates.lat, coordinates.lng):
                continue
            if not matches_search(event_search_fields(event), query.search):
                continue
            if query.performer_id and query.performer_id not in event.performer_ids:
                continue
            if not matches_region(event, query.region):
                continue
            markers.append(MapEvent(
                id=event.id,
                title=event.title,
                main_image=event.main_image,
                location=event.location,
                schedule=event.schedule,
                time_status="active" if event.is_started(now) else "upcoming",
            ))

        result = MapResponse(events=markers, total=len(markers))
        self.cache.set(key, result, self.settings.ttl_map)
        return result

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def _snapshots(self, performer_ids: List[str]) -> List[PerformerSnapshot]:
        """
        Snapshot approved performers in request order.

        Raises:
            ValidationError: If any id is missing or not approved
        """
        docs: Dict[str, dict] = await self.gateway.get_many(
            PERFORMERS, performer_ids, self.settings.membership_chunk_size
        )
        snapshots = []
        for performer_id in performer_ids:
            doc = docs.get(performer_id)
            performer = Performer.model_validate(doc) if doc else None
            if performer is None or performer.status != PerformerStatus.APPROVED:
                raise ValidationError(
                    f"Performer {performer_id} does not exist or is not approved",
                    field="performer_ids",
                )
            snapshots.append(PerformerSnapshot(
                id=performer.id,
                name=performer.stage_name,
                profile_image=performer.profile_image,
            ))
        return snapshots

    async def create_event(self, data: EventCreate, user: UserContext) -> SupportEvent:
        """
        Submit a new support event (status pending).

        Raises:
            ValidationError: If a performer is missing or not approved
        """
        snapshots = await self._snapshots(data.performer_ids)
        now = self.clock()
        event = SupportEvent(
            id=GuidService.generate_guid("evt"),
            performers=snapshots,
            title=data.title,
            description=data.description,
            location=data.location.model_dump(),
            schedule=data.schedule,
            social_media=data.social_media,
            main_image=data.main_image,
            detail_images=data.detail_images,
            status=EventStatus.PENDING,
            created_by=user.user_id,
            created_at=now,
            updated_at=now,
        )
        await self.gateway.add(SUPPORT_EVENTS, event.to_document(), doc_id=event.id)
        cache_keys.invalidate_event(self.cache, event.id)

        logger.info(f"Created event: {event.title} ({event.id})")
        return event

    async def update_event(self, event_id: str, data: EventUpdate, user: UserContext) -> SupportEvent:
        """
        Edit a support event.

        Changing performers re-snapshots them (all must be approved). On an
        approved event, a schedule or performer change re-syncs the
        performers' active_event_ids.

        Raises:
            NotFoundError: If the event does not exist
            PermissionDeniedError: If the caller may not edit it
            ValidationError: If a new performer is missing or not approved
        """
        doc = await self.gateway.get(SUPPORT_EVENTS, event_id)
        if doc is None:
            raise NotFoundError("SupportEvent", event_id)
        event = SupportEvent.model_validate(doc)
        ensure_can_edit(EntityKind.EVENT, event.status, event.created_by, user)

        fields = data.model_dump(exclude_unset=True, mode="json")
        if not fields:
            return event

        performer_ids = fields.pop("performer_ids", None)
        patch = dict(fields)
        if performer_ids is not None and performer_ids != event.performer_ids:
            snapshots = await self._snapshots(performer_ids)
            patch["performers"] = [s.model_dump(mode="json") for s in snapshots]
            patch["performer_ids"] = performer_ids
        patch["updated_at"] = self.clock().isoformat()

        await self.gateway.update(SUPPORT_EVENTS, event_id, patch)
        updated = SupportEvent.model_validate({**event.model_dump(), **patch})

        relationship_changed = "performers" in patch or "schedule" in patch
        if event.status == EventStatus.APPROVED and relationship_changed:
            await self.crossref.sync_event(updated, removed_performer_ids=event.performer_ids)

        cache_keys.invalidate_event(
            self.cache, event_id, set(event.performer_ids) | set(updated.performer_ids)
        )
        logger.info(f"Updated event: {event_id} ({', '.join(sorted(patch))})")
        return updated

    async def delete_event(self, event_id: str, user: UserContext) -> None:
        """
        Delete a support event (creator or administrator).

        Removes the event from its performers' active_event_ids and deletes
        its favorites (best effort).

        Raises:
            NotFoundError: If the event does not exist
            PermissionDeniedError: If the caller is neither creator nor admin
        """
        doc = await self.gateway.get(SUPPORT_EVENTS, event_id)
        if doc is None:
            raise NotFoundError("SupportEvent", event_id)
        event = SupportEvent.model_validate(doc)
        if not (user.is_admin or user.owns(event.created_by)):
            raise PermissionDeniedError(
                "Only the creator or an administrator may delete this event",
                user_id=user.user_id,
            )

        await self.gateway.delete(SUPPORT_EVENTS, event_id)
        await self.crossref.apply(event.performer_ids, event_id, approved=False)

        if self.favorites is not None:
            try:
                await self.favorites.remove_all_for_event(event_id)
            except ServiceError as e:
                logger.error(f"Failed to remove favorites of deleted event {event_id}: {e}")

        cache_keys.invalidate_event(self.cache, event_id, event.performer_ids)
        logger.info(f"Deleted event: {event_id}", extra={"user_id": user.user_id})
