"""
Moderation engine: the review state machine for performers and events.

State machine (performers have the extra ``exists`` target):

    pending  --admin:approve-->          approved
    pending  --admin:reject(reason?)-->  rejected
    pending  --admin:exists-->           exists        (performer only)
    rejected --creator:resubmit-->       pending       (clears rejected_reason)

Administrators may re-review a record in any status (for example reject an
approved event); ``pending`` is never a review target. Only the creator may
resubmit, and only from ``rejected``. Editing is open to administrators on
any record and to the creator while the record is pending or rejected.

Event status changes to or from ``approved`` trigger the cross-reference
maintainer and invalidate every cached view of the event.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Type

from cheerboard.middleware.auth import UserContext
from cheerboard.schemas.common import (
    BatchReviewItem,
    EventStatus,
    PerformerAdminUpdate,
    PerformerStatus,
    ReviewTarget,
)
from cheerboard.schemas.event import SupportEvent
from cheerboard.schemas.performer import Performer
from cheerboard.services import cache_keys
from cheerboard.services.crossref_service import CrossReferenceMaintainer
from cheerboard.services.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ServiceError,
    ValidationError,
)
from cheerboard.store import PERFORMERS, SUPPORT_EVENTS, StoreGateway, WriteKind, WriteOp
from cheerboard.utils.cache import Clock, MemoryCache, utc_now
from cheerboard.utils.logging_config import get_logger


logger = get_logger("services")


class EntityKind(str, Enum):
    PERFORMER = "performer"
    EVENT = "event"


# ============================================================================
# Status tables
# ============================================================================


@dataclass(frozen=True)
class StatusRule:
    """
    What a moderation status allows.

    Attributes:
        review_target: An administrator may move a record into this status
        resubmittable: The creator may resubmit from this status
        creator_editable: The creator may edit while in this status
        public: Visible to every reader
    """
    review_target: bool
    resubmittable: bool
    creator_editable: bool
    public: bool


PERFORMER_RULES: Dict[PerformerStatus, StatusRule] = {
    PerformerStatus.PENDING: StatusRule(False, False, True, False),
    PerformerStatus.APPROVED: StatusRule(True, False, False, True),
    PerformerStatus.REJECTED: StatusRule(True, True, True, False),
    PerformerStatus.EXISTS: StatusRule(True, False, False, False),
}

EVENT_RULES: Dict[EventStatus, StatusRule] = {
    EventStatus.PENDING: StatusRule(False, False, True, False),
    EventStatus.APPROVED: StatusRule(True, False, False, True),
    EventStatus.REJECTED: StatusRule(True, True, True, False),
}

STATUS_ENUMS: Dict[EntityKind, Type[Enum]] = {
    EntityKind.PERFORMER: PerformerStatus,
    EntityKind.EVENT: EventStatus,
}

RULES: Dict[EntityKind, Dict] = {
    EntityKind.PERFORMER: PERFORMER_RULES,
    EntityKind.EVENT: EVENT_RULES,
}


def _check_exhaustive() -> None:
    for kind, enum_cls in STATUS_ENUMS.items():
        missing = set(enum_cls) - set(RULES[kind])
        if missing:
            raise RuntimeError(
                f"Status rules for {kind.value} miss: {sorted(m.value for m in missing)}"
            )


_check_exhaustive()


def rule_for(kind: EntityKind, status: Enum) -> StatusRule:
    return RULES[kind][status]


def resolve_review_target(kind: EntityKind, target: ReviewTarget | str) -> Enum:
    """
    Map a requested review status onto the entity's status enum.

    Raises:
        InvalidTransitionError: If the status does not exist for the entity
            or is not a review target
    """
    value = target.value if isinstance(target, Enum) else str(target)
    enum_cls = STATUS_ENUMS[kind]
    try:
        status = enum_cls(value)
    except ValueError:
        raise InvalidTransitionError(
            kind.value, "*", value, f"'{value}' is not a {kind.value} status"
        )
    if not rule_for(kind, status).review_target:
        raise InvalidTransitionError(
            kind.value, "*", value, f"'{value}' is not a valid review target"
        )
    return status


def require_admin(user: UserContext, action: str) -> None:
    if not user.is_admin:
        raise PermissionDeniedError(f"Only administrators may {action}", user_id=user.user_id)


def can_view(kind: EntityKind, status: Enum, created_by: str, user: Optional[UserContext]) -> bool:
    """Public statuses are visible to everyone; others to admins and the creator."""
    if rule_for(kind, status).public:
        return True
    return user is not None and (user.is_admin or user.owns(created_by))


def ensure_can_edit(kind: EntityKind, status: Enum, created_by: str, user: UserContext) -> None:
    """
    Check the edit permission for a record.

    Raises:
        PermissionDeniedError: Non-admin callers who are not the creator, or
            creators editing a record that is no longer pending/rejected
    """
    if user.is_admin:
        return
    if not user.owns(created_by):
        raise PermissionDeniedError(f"Only the creator may edit this {kind.value}", user_id=user.user_id)
    if not rule_for(kind, status).creator_editable:
        raise PermissionDeniedError(
            f"A {status.value} {kind.value} can only be edited by an administrator",
            user_id=user.user_id,
        )


def _status_patch(status: Enum, reason: Optional[str], now_iso: str) -> dict:
    rejected = status.value == "rejected"
    return {
        "status": status.value,
        "rejected_reason": reason if rejected else None,
        "updated_at": now_iso,
    }


# ============================================================================
# Engine
# ============================================================================


class ModerationEngine:
    """
    Applies review, batch review and resubmission to performers and events.

    Usage:
        >>> engine = ModerationEngine(gateway, cache, crossref)
        >>> await engine.review_event(event_id, ReviewTarget.APPROVED, admin)
        >>> await engine.resubmit_performer(performer_id, creator)

    Reads go to the store, not the cache, so decisions see the latest status.
    """

    def __init__(
        self,
        gateway: StoreGateway,
        cache: MemoryCache,
        crossref: CrossReferenceMaintainer,
        batch_write_limit: int = 500,
        chunk_size: int = 30,
        clock: Clock = utc_now,
    ):
        self.gateway = gateway
        self.cache = cache
        self.crossref = crossref
        self.batch_write_limit = batch_write_limit
        self.chunk_size = chunk_size
        self.clock = clock

    async def _load_performer(self, performer_id: str) -> Performer:
        doc = await self.gateway.get(PERFORMERS, performer_id)
        if doc is None:
            raise NotFoundError("Performer", performer_id)
        return Performer.model_validate(doc)

    async def _load_event(self, event_id: str) -> SupportEvent:
        doc = await self.gateway.get(SUPPORT_EVENTS, event_id)
        if doc is None:
            raise NotFoundError("SupportEvent", event_id)
        return SupportEvent.model_validate(doc)

    def _now_iso(self) -> str:
        return self.clock().isoformat()

    # ------------------------------------------------------------------
    # Performers
    # ------------------------------------------------------------------

    def _performer_patch(
        self,
        status: PerformerStatus,
        reason: Optional[str],
        admin_update: Optional[PerformerAdminUpdate],
    ) -> dict:
        patch = _status_patch(status, reason, self._now_iso())
        if status == PerformerStatus.APPROVED and admin_update is not None:
            patch.update(admin_update.model_dump(exclude_none=True))
        return patch

    async def review_performer(
        self,
        performer_id: str,
        target: ReviewTarget | str,
        user: UserContext,
        reason: Optional[str] = None,
        admin_update: Optional[PerformerAdminUpdate] = None,
    ) -> Performer:
        """
        Move a performer to approved, rejected or exists.

        Raises:
            PermissionDeniedError: Caller is not an administrator
            InvalidTransitionError: Target is pending or unknown
            NotFoundError: Performer does not exist
        """
        require_admin(user, "review performers")
        status = resolve_review_target(EntityKind.PERFORMER, target)
        performer = await self._load_performer(performer_id)

        patch = self._performer_patch(status, reason, admin_update)
        await self.gateway.update(PERFORMERS, performer_id, patch)
        cache_keys.invalidate_performer(self.cache, performer_id)

        logger.info(
            f"Performer {performer_id} reviewed: {performer.status.value} -> {status.value}",
            extra={"performer_id": performer_id, "admin_id": user.user_id},
        )
        return Performer.model_validate({**performer.model_dump(), **patch})

    async def batch_review_performers(
        self, items: Sequence[BatchReviewItem], user: UserContext
    ) -> List[str]:
        """
        Review many performers in one atomic write.

        Existence is not re-checked; a missing id fails the whole batch.

        Returns:
            Ids written, in request order
        """
        require_admin(user, "review performers")
        self._check_batch_size(items)
        statuses = [resolve_review_target(EntityKind.PERFORMER, item.status) for item in items]

        ops = [
            WriteOp(
                WriteKind.UPDATE,
                PERFORMERS,
                item.id,
                self._performer_patch(status, item.reason, item.admin_update),
            )
            for item, status in zip(items, statuses)
        ]
        await self.gateway.batch_write(ops)

        for item in items:
            self.cache.delete(cache_keys.performer_key(item.id))
        self.cache.clear_pattern(cache_keys.PERFORMERS_PREFIX)

        logger.info(f"Batch reviewed {len(items)} performers", extra={"admin_id": user.user_id})
        return [item.id for item in items]

    async def resubmit_performer(self, performer_id: str, user: UserContext) -> Performer:
        """
        Send a rejected performer back to pending.

        Raises:
            NotFoundError: Performer does not exist
            PermissionDeniedError: Caller is not the creator
            InvalidTransitionError: Performer is not rejected
        """
        performer = await self._load_performer(performer_id)
        self._check_resubmit(EntityKind.PERFORMER, performer.status, performer.created_by, user)

        patch = _status_patch(PerformerStatus.PENDING, None, self._now_iso())
        await self.gateway.update(PERFORMERS, performer_id, patch)
        cache_keys.invalidate_performer(self.cache, performer_id)

        logger.info(f"Performer {performer_id} resubmitted", extra={"user_id": user.user_id})
        return Performer.model_validate({**performer.model_dump(), **patch})

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def review_event(
        self,
        event_id: str,
        target: ReviewTarget | str,
        user: UserContext,
        reason: Optional[str] = None,
    ) -> SupportEvent:
        """
        Move a support event to approved or rejected.

        A change to or from approved updates the referenced performers'
        active_event_ids.

        Raises:
            PermissionDeniedError: Caller is not an administrator
            InvalidTransitionError: Target is pending, exists or unknown
            NotFoundError: Event does not exist
        """
        require_admin(user, "review events")
        status = resolve_review_target(EntityKind.EVENT, target)
        event = await self._load_event(event_id)

        patch = _status_patch(status, reason, self._now_iso())
        await self.gateway.update(SUPPORT_EVENTS, event_id, patch)
        updated = SupportEvent.model_validate({**event.model_dump(), **patch})

        if (event.status == EventStatus.APPROVED) != (status == EventStatus.APPROVED):
            await self.crossref.sync_event(updated)
        cache_keys.invalidate_event(self.cache, event_id, event.performer_ids)

        logger.info(
            f"Event {event_id} reviewed: {event.status.value} -> {status.value}",
            extra={"event_id": event_id, "admin_id": user.user_id},
        )
        return updated

    async def batch_review_events(
        self, items: Sequence[BatchReviewItem], user: UserContext
    ) -> List[str]:
        """
        Review many events in one atomic write, then fix up cross-references.

        The written events are read back with chunked membership queries and
        their performers are updated in one pass.
        """
        require_admin(user, "review events")
        self._check_batch_size(items)
        statuses = [resolve_review_target(EntityKind.EVENT, item.status) for item in items]

        now_iso = self._now_iso()
        ops = [
            WriteOp(WriteKind.UPDATE, SUPPORT_EVENTS, item.id, _status_patch(status, item.reason, now_iso))
            for item, status in zip(items, statuses)
        ]
        await self.gateway.batch_write(ops)

        ids = [item.id for item in items]
        performer_ids: List[str] = []
        try:
            docs = await self.gateway.get_many(SUPPORT_EVENTS, ids, self.chunk_size)
            now = self.clock()
            changes = []
            for doc in docs.values():
                event = SupportEvent.model_validate(doc)
                active = event.status == EventStatus.APPROVED and not event.is_ended(now)
                changes.append((event.id, event.performer_ids, active))
                performer_ids.extend(event.performer_ids)
            await self.crossref.apply_changes(changes)
        except (ServiceError, ValueError) as e:
            logger.error(f"Cross-reference fix-up after batch review failed: {e}")

        for event_id in ids:
            cache_keys.invalidate_event(self.cache, event_id, performer_ids)

        logger.info(f"Batch reviewed {len(items)} events", extra={"admin_id": user.user_id})
        return ids

    async def resubmit_event(self, event_id: str, user: UserContext) -> SupportEvent:
        """
        Send a rejected event back to pending.

        Raises:
            NotFoundError: Event does not exist
            PermissionDeniedError: Caller is not the creator
            InvalidTransitionError: Event is not rejected
        """
        event = await self._load_event(event_id)
        self._check_resubmit(EntityKind.EVENT, event.status, event.created_by, user)

        patch = _status_patch(EventStatus.PENDING, None, self._now_iso())
        await self.gateway.update(SUPPORT_EVENTS, event_id, patch)
        cache_keys.invalidate_event(self.cache, event_id, event.performer_ids)

        logger.info(f"Event {event_id} resubmitted", extra={"user_id": user.user_id})
        return SupportEvent.model_validate({**event.model_dump(), **patch})

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def _check_batch_size(self, items: Sequence[BatchReviewItem]) -> None:
        if not items:
            raise ValidationError("Batch review needs at least one item", field="items")
        if len(items) > self.batch_write_limit:
            raise ValidationError(
                f"Batch review accepts at most {self.batch_write_limit} items", field="items"
            )

    @staticmethod
    def _check_resubmit(kind: EntityKind, status: Enum, created_by: str, user: UserContext) -> None:
        if not user.owns(created_by):
            raise PermissionDeniedError(
                f"Only the creator may resubmit this {kind.value}", user_id=user.user_id
            )
        if not rule_for(kind, status).resubmittable:
            raise InvalidTransitionError(
                kind.value, status.value, "pending",
                f"Only a rejected {kind.value} can be resubmitted (current: {status.value})",
            )
