"""
Submissions summary: a user's own performers and events with counts.
"""

from cheerboard.schemas.common import EventStatus, PerformerStatus
from cheerboard.schemas.favorite import SubmissionCounts, SubmissionSummary
from cheerboard.services.event_service import load_events
from cheerboard.services.performer_service import load_performers
from cheerboard.services.query_pipeline import sort_events, sort_performers
from cheerboard.store import PERFORMERS, SUPPORT_EVENTS, FieldFilter, StoreGateway


class SubmissionService:
    """
    Read-only view of what a user submitted.

    Usage:
        >>> summary = await SubmissionService(gateway).get_user_submissions("user-1")
        >>> summary.counts.pending_events
    """

    def __init__(self, gateway: StoreGateway):
        self.gateway = gateway

    async def get_user_submissions(self, user_id: str) -> SubmissionSummary:
        """Performers and events created by ``user_id``, newest first, plus counts."""
        owner = [FieldFilter("created_by", user_id)]
        performers = sort_performers(
            load_performers(await self.gateway.query(PERFORMERS, owner)), "created_at", "desc"
        )
        events = sort_events(
            load_events(await self.gateway.query(SUPPORT_EVENTS, owner)), "created_at", "desc"
        )

        counts = SubmissionCounts(
            total_performers=len(performers),
            total_events=len(events),
            pending_performers=sum(p.status == PerformerStatus.PENDING for p in performers),
            pending_events=sum(e.status == EventStatus.PENDING for e in events),
            approved_performers=sum(p.status == PerformerStatus.APPROVED for p in performers),
            approved_events=sum(e.status == EventStatus.APPROVED for e in events),
        )
        return SubmissionSummary(performers=performers, events=events, counts=counts)
