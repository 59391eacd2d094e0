"""
Performer service for submitting, reading, editing and deleting performers.

Design:
- New performers are pending until an administrator reviews them
  (see ModerationEngine)
- Reads consult the cache first; a not-found result is cached briefly
- Non-approved performers are visible only to administrators and their creator
- Deletion is administrator-only and blocked while any event references
  the performer
"""

from typing import List, Optional

from cheerboard.config.settings import AppSettings, get_settings
from cheerboard.middleware.auth import UserContext
from cheerboard.schemas.common import STATUS_ALL, PerformerStatus
from cheerboard.schemas.performer import (
    Performer,
    PerformerCreate,
    PerformerListResponse,
    PerformerQuery,
    PerformerUpdate,
)
from cheerboard.services import cache_keys
from cheerboard.services.exceptions import ConflictError, NotFoundError
from cheerboard.services.guid import GuidService
from cheerboard.services.moderation import EntityKind, can_view, ensure_can_edit, require_admin
from cheerboard.services.query_pipeline import (
    check_list_visibility,
    clamp_page,
    in_birthday_week,
    is_admin_scope,
    matches_search,
    paginate,
    performer_search_fields,
    sort_performers,
)
from cheerboard.store import PERFORMERS, SUPPORT_EVENTS, FieldFilter, StoreGateway
from cheerboard.utils.cache import Clock, MemoryCache, utc_now
from cheerboard.utils.logging_config import get_logger


logger = get_logger("services")


def load_performers(docs: List[dict]) -> List[Performer]:
    """Validate stored documents, skipping (and logging) unreadable ones."""
    performers = []
    for doc in docs:
        try:
            performers.append(Performer.model_validate(doc))
        except ValueError as e:
            logger.warning(f"Skipping unreadable performer {doc.get('id')}: {e}")
    return performers


class PerformerService:
    """
    Service for managing performers.

    Usage:
        >>> service = PerformerService(gateway, cache)
        >>> performer = await service.create_performer(
        ...     PerformerCreate(stage_name="Mina"), user
        ... )
        >>> page = await service.list_performers(PerformerQuery(search="mina"))
    """

    def __init__(
        self,
        gateway: StoreGateway,
        cache: MemoryCache,
        settings: Optional[AppSettings] = None,
        clock: Clock = utc_now,
    ):
        """
        Initialize performer service.

        Args:
            gateway: Store gateway (timeout + retry)
            cache: Process cache
            settings: Application settings (TTLs, page limits)
            clock: Callable returning the current aware datetime
        """
        self.gateway = gateway
        self.cache = cache
        self.settings = settings or get_settings()
        self.clock = clock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _get_cached(self, performer_id: str) -> Optional[Performer]:
        key = cache_keys.performer_key(performer_id)
        cached, found = self.cache.get(key)
        if found:
            return cached

        doc = await self.gateway.get(PERFORMERS, performer_id)
        performer = Performer.model_validate(doc) if doc else None
        ttl = self.settings.ttl_performer if performer else self.settings.ttl_performer_not_found
        self.cache.set(key, performer, ttl)
        return performer

    async def get_performer(self, performer_id: str, user: Optional[UserContext] = None) -> Performer:
        """
        Get a performer by id.

        Raises:
            NotFoundError: If the performer does not exist or is not visible
                to the caller
        """
        performer = await self._get_cached(performer_id)
        if performer is None or not can_view(
            EntityKind.PERFORMER, performer.status, performer.created_by, user
        ):
            raise NotFoundError("Performer", performer_id)
        return performer

    async def get_by_status(
        self,
        status: PerformerStatus,
        created_by: Optional[str] = None,
    ) -> List[Performer]:
        """
        Get performers in one moderation status.

        Pending performers come newest first and are never cached; other
        statuses are sorted by stage name and cached (approved 30 minutes,
        rejected 15 minutes).
        """
        if status == PerformerStatus.APPROVED and created_by is None:
            return await self._approved_base()

        filters = [FieldFilter("status", status.value)]
        if created_by:
            filters.append(FieldFilter("created_by", created_by))

        ttl = {
            PerformerStatus.APPROVED: self.settings.ttl_performers_approved,
            PerformerStatus.REJECTED: self.settings.ttl_performers_rejected,
        }.get(status)
        key = cache_keys.performers_status_key(status.value, created_by)
        if ttl:
            cached, found = self.cache.get(key)
            if found:
                return cached

        performers = load_performers(await self.gateway.query(PERFORMERS, filters))
        if status == PerformerStatus.PENDING:
            performers = sort_performers(performers, "created_at", "desc")
        else:
            performers = sort_performers(performers, "stage_name", "asc")

        if ttl:
            self.cache.set(key, performers, ttl)
        return performers

    async def list_pending(self, user: UserContext) -> List[Performer]:
        """Administrator review queue (newest first)."""
        require_admin(user, "view the performer review queue")
        return await self.get_by_status(PerformerStatus.PENDING)

    async def _approved_base(self) -> List[Performer]:
        cached, found = self.cache.get(cache_keys.PERFORMERS_APPROVED)
        if found:
            return cached
        docs = await self.gateway.query(
            PERFORMERS, [FieldFilter("status", PerformerStatus.APPROVED.value)]
        )
        performers = sort_performers(load_performers(docs), "stage_name", "asc")
        self.cache.set(cache_keys.PERFORMERS_APPROVED, performers, self.settings.ttl_performers_approved)
        return performers

    async def _fetch_base(self, status: str, created_by: Optional[str]) -> List[Performer]:
        if status == STATUS_ALL:
            filters = [FieldFilter("created_by", created_by)] if created_by else []
            return load_performers(await self.gateway.query(PERFORMERS, filters))
        if status == PerformerStatus.APPROVED.value and created_by is None:
            return await self._approved_base()
        filters = [FieldFilter("status", status)]
        if created_by:
            filters.append(FieldFilter("created_by", created_by))
        return load_performers(await self.gateway.query(PERFORMERS, filters))

    async def list_performers(
        self,
        query: PerformerQuery,
        user: Optional[UserContext] = None,
    ) -> PerformerListResponse:
        """
        Filtered, sorted, paginated performer list.

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
        key = cache_keys.performer_query_key(params)
        cached, found = self.cache.get(key)
        if found:
            return cached

        performers = await self._fetch_base(query.status, query.created_by)
        filtered = [
            p for p in performers
            if matches_search(performer_search_fields(p), query.search)
            and (
                query.birthday_week_start is None
                or in_birthday_week(p.birthday, query.birthday_week_start, query.birthday_week_end)
            )
        ]
        ordered = sort_performers(filtered, query.sort_by, query.sort_order)
        items, pagination = paginate(ordered, page, limit)

        result = PerformerListResponse(items=items, pagination=pagination)
        ttl = (
            self.settings.ttl_performer_admin_query
            if is_admin_scope(query.status)
            else self.settings.ttl_performers_approved
        )
        self.cache.set(key, result, ttl)
        return result

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_performer(self, data: PerformerCreate, user: UserContext) -> Performer:
        """
        Submit a new performer (status pending).

        Returns:
            The stored performer
        """
        now = self.clock()
        performer = Performer(
            id=GuidService.generate_guid("prf"),
            **data.model_dump(),
            status=PerformerStatus.PENDING,
            created_by=user.user_id,
            created_at=now,
            updated_at=now,
        )
        await self.gateway.add(PERFORMERS, performer.to_document(), doc_id=performer.id)
        cache_keys.invalidate_performer(self.cache, performer.id)

        logger.info(f"Created performer: {performer.stage_name} ({performer.id})")
        return performer

    async def update_performer(
        self,
        performer_id: str,
        data: PerformerUpdate,
        user: UserContext,
    ) -> Performer:
        """
        Edit a performer's descriptive fields.

        Raises:
            NotFoundError: If the performer does not exist
            PermissionDeniedError: If the caller may not edit it
        """
        doc = await self.gateway.get(PERFORMERS, performer_id)
        if doc is None:
            raise NotFoundError("Performer", performer_id)
        performer = Performer.model_validate(doc)
        ensure_can_edit(EntityKind.PERFORMER, performer.status, performer.created_by, user)

        patch = data.model_dump(exclude_unset=True, mode="json")
        if not patch:
            return performer
        patch["updated_at"] = self.clock().isoformat()

        await self.gateway.update(PERFORMERS, performer_id, patch)
        cache_keys.invalidate_performer(self.cache, performer_id)

        logger.info(f"Updated performer: {performer_id} ({', '.join(sorted(patch))})")
        return Performer.model_validate({**performer.model_dump(), **patch})

    async def delete_performer(self, performer_id: str, user: UserContext) -> None:
        """
        Delete a performer.

        Raises:
            PermissionDeniedError: Caller is not an administrator
            NotFoundError: If the performer does not exist
            ConflictError: If any support event references the performer
        """
        require_admin(user, "delete performers")
        doc = await self.gateway.get(PERFORMERS, performer_id)
        if doc is None:
            raise NotFoundError("Performer", performer_id)

        references = await self.gateway.query(
            SUPPORT_EVENTS, [FieldFilter("performer_ids", performer_id, "contains")]
        )
        if references:
            raise ConflictError(
                f"Performer {performer_id} is referenced by {len(references)} event(s)",
                references=len(references),
            )

        await self.gateway.delete(PERFORMERS, performer_id)
        cache_keys.invalidate_performer(self.cache, performer_id)
        logger.info(f"Deleted performer: {performer_id}", extra={"admin_id": user.user_id})
