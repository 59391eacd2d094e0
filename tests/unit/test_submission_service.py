"""
Unit tests for SubmissionService (a user's own submissions).
"""

import pytest

from cheerboard.schemas.common import ReviewTarget


class TestGetUserSubmissions:

    @pytest.mark.asyncio
    async def test_own_records_newest_first_with_counts(
        self, create_performer, create_event, submission_service, clock, bob
    ):
        mina = await create_performer("Mina")
        clock.advance(minutes=1)
        await create_performer("Aya", status=None)
        clock.advance(minutes=1)
        await create_performer("Rin", status=ReviewTarget.REJECTED)
        await create_performer("Bob's pick", user=bob)
        await create_event([mina.id], title="Approved cafe")
        clock.advance(minutes=1)
        await create_event([mina.id], title="Pending cafe", status=None)

        summary = await submission_service.get_user_submissions("alice")

        assert [p.stage_name for p in summary.performers] == ["Rin", "Aya", "Mina"]
        assert [e.title for e in summary.events] == ["Pending cafe", "Approved cafe"]
        assert summary.counts.total_performers == 3
        assert summary.counts.pending_performers == 1
        assert summary.counts.approved_performers == 1
        assert summary.counts.total_events == 2
        assert summary.counts.pending_events == 1
        assert summary.counts.approved_events == 1

    @pytest.mark.asyncio
    async def test_no_submissions(self, submission_service):
        summary = await submission_service.get_user_submissions("nobody")

        assert summary.performers == []
        assert summary.events == []
        assert summary.counts.total_performers == 0
