"""
Cross-reference maintainer for performer.active_event_ids.

Keeps each performer's list of active events consistent with the support
events that reference it:

    active_event_ids == {event.id | event approved, event not ended,
                         performer in event.performers}

Two paths maintain the index:
- apply()/sync_event(): incremental fix-up after an event write. Failures
  are logged per performer and never fail the triggering write.
- rebuild(): full re-derivation from a scan of approved events, written in
  atomic batches. Run by ``cheerboard reconcile`` or the admin route; it
  also drops events that ended since they were approved.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from cheerboard.schemas.common import EventStatus
from cheerboard.schemas.event import SupportEvent
from cheerboard.services import cache_keys
from cheerboard.services.exceptions import ServiceError
from cheerboard.store import PERFORMERS, SUPPORT_EVENTS, FieldFilter, StoreGateway, WriteKind, WriteOp
from cheerboard.store.gateway import chunked
from cheerboard.utils.cache import Clock, MemoryCache, utc_now
from cheerboard.utils.logging_config import get_logger


logger = get_logger("services")

ACTIVE_EVENT_IDS = "active_event_ids"

# (event_id, performer_ids, approved)
EventChange = Tuple[str, Sequence[str], bool]


@dataclass
class RebuildReport:
    """Outcome of a full reconciliation run."""

    events_scanned: int
    performers_scanned: int
    performers_updated: int

    def to_dict(self) -> dict:
        return {
            "events_scanned": self.events_scanned,
            "performers_scanned": self.performers_scanned,
            "performers_updated": self.performers_updated,
        }


def is_effectively_active(event: SupportEvent, now: datetime) -> bool:
    """An event counts toward active_event_ids only while approved and not ended."""
    return event.status == EventStatus.APPROVED and not event.is_ended(now)


class CrossReferenceMaintainer:
    """
    Maintains the performer -> active events reverse index.

    Usage:
        >>> crossref = CrossReferenceMaintainer(gateway, cache)
        >>> await crossref.sync_event(event)
        >>> report = await crossref.rebuild()
    """

    def __init__(
        self,
        gateway: StoreGateway,
        cache: MemoryCache,
        chunk_size: int = 30,
        batch_write_limit: int = 500,
        clock: Clock = utc_now,
    ):
        self.gateway = gateway
        self.cache = cache
        self.chunk_size = chunk_size
        self.batch_write_limit = batch_write_limit
        self.clock = clock

    async def apply(self, performer_ids: Iterable[str], event_id: str, approved: bool) -> int:
        """
        Add (approved) or remove (otherwise) ``event_id`` on each performer.

        Idempotent. Returns the number of performers written.
        """
        return await self.apply_changes([(event_id, list(performer_ids), approved)])

    async def sync_event(self, event: SupportEvent, removed_performer_ids: Iterable[str] = ()) -> int:
        """
        Bring the referenced performers in line with an event's current state.

        Args:
            event: Event as it is now stored
            removed_performer_ids: Performers no longer on the event

        Returns:
            Number of performers written
        """
        active = is_effectively_active(event, self.clock())
        changes: List[EventChange] = [(event.id, event.performer_ids, active)]
        removed = [pid for pid in removed_performer_ids if pid not in event.performer_ids]
        if removed:
            changes.append((event.id, removed, False))
        return await self.apply_changes(changes)

    async def apply_changes(self, changes: Sequence[EventChange]) -> int:
        """
        Apply several event changes with one chunked read of the performers.

        Each changed performer is written with its own update; a failure on
        one performer is logged and does not stop the others.

        Returns:
            Number of performers written
        """
        performer_ids = list(dict.fromkeys(pid for _, pids, _ in changes for pid in pids))
        if not performer_ids:
            return 0

        try:
            performers = await self.gateway.get_many(PERFORMERS, performer_ids, self.chunk_size)
        except ServiceError as e:
            logger.error(
                f"Cross-reference read failed for {len(performer_ids)} performers: {e}",
                extra={"performer_ids": performer_ids},
            )
            return 0

        written = 0
        for performer_id in performer_ids:
            doc = performers.get(performer_id)
            if doc is None:
                logger.warning(f"Cross-reference skipped missing performer {performer_id}")
                continue

            current: List[str] = list(doc.get(ACTIVE_EVENT_IDS) or [])
            updated = list(current)
            for event_id, pids, approved in changes:
                if performer_id not in pids:
                    continue
                if approved and event_id not in updated:
                    updated.append(event_id)
                elif not approved and event_id in updated:
                    updated = [eid for eid in updated if eid != event_id]

            if updated == current:
                continue

            try:
                await self.gateway.update(PERFORMERS, performer_id, {ACTIVE_EVENT_IDS: updated})
            except ServiceError as e:
                logger.error(f"Cross-reference update failed for performer {performer_id}: {e}")
                continue
            self.cache.delete(cache_keys.performer_key(performer_id))
            written += 1

        if written:
            self.cache.clear_pattern(cache_keys.PERFORMERS_PREFIX)
        logger.info(f"Cross-reference updated {written} performer(s)")
        return written

    async def rebuild(self) -> RebuildReport:
        """
        Re-derive every performer's active_event_ids from the approved events.

        Performers whose stored list differs are rewritten in atomic batches
        of at most ``batch_write_limit`` updates. Existing order is kept for
        ids that stay; new ids are appended in event scan order.

        Raises:
            StoreUnavailableError: If the scan or a batch write fails
        """
        now = self.clock()
        event_docs = await self.gateway.query(
            SUPPORT_EVENTS,
            [FieldFilter("status", EventStatus.APPROVED.value)],
            order_by="created_at",
        )

        expected: Dict[str, List[str]] = {}
        for doc in event_docs:
            event = _load_event(doc)
            if event is None or not is_effectively_active(event, now):
                continue
            for performer_id in event.performer_ids:
                expected.setdefault(performer_id, []).append(event.id)

        performer_docs = await self.gateway.query(PERFORMERS)
        ops: List[WriteOp] = []
        for doc in performer_docs:
            current = list(doc.get(ACTIVE_EVENT_IDS) or [])
            target_set = expected.get(doc["id"], [])
            if set(current) == set(target_set) and len(current) == len(target_set):
                continue
            kept = [eid for eid in current if eid in target_set]
            kept += [eid for eid in target_set if eid not in kept]
            ops.append(WriteOp(WriteKind.UPDATE, PERFORMERS, doc["id"], {ACTIVE_EVENT_IDS: kept}))

        for batch in chunked(ops, self.batch_write_limit):
            await self.gateway.batch_write(batch)
            for op in batch:
                self.cache.delete(cache_keys.performer_key(op.doc_id))

        if ops:
            self.cache.clear_pattern(cache_keys.PERFORMERS_PREFIX)

        report = RebuildReport(
            events_scanned=len(event_docs),
            performers_scanned=len(performer_docs),
            performers_updated=len(ops),
        )
        logger.info("Cross-reference rebuild finished", extra=report.to_dict())
        return report


def _load_event(doc: dict) -> Optional[SupportEvent]:
    try:
        return SupportEvent.model_validate(doc)
    except ValueError as e:
        logger.warning(f"Skipping unreadable event {doc.get('id')}: {e}")
        return None
