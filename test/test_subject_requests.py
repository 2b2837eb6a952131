"""
Tests for data subject requests
"""

from datetime import timedelta

import pytest

from boligdeposit.constants.gdpr import RequestStatus, RequestType
from boligdeposit.exceptions import InvalidStatusTransitionError, RequestNotFoundError, ValidationError
from boligdeposit.schemas.gdpr import SubjectRequestCreate, SubjectRequestUpdate
from boligdeposit.services.gdpr_service import handle_data_subject_request


async def submit(gdpr, user_id="u1", request_type=RequestType.ACCESS, details="Send me my data") -> str:
    return await gdpr.submit_data_subject_request(
        SubjectRequestCreate(user_id=user_id, type=request_type, request_details=details)
    )


class TestSubmitRequest:
    @pytest.mark.asyncio
    async def test_new_request_is_pending_with_deadline(self, gdpr, clock):
        """Deadline is the request date plus 30 days."""
        request_id = await submit(gdpr)

        request = await gdpr.get_request(request_id)
        assert request.status == RequestStatus.PENDING
        assert request.request_date == clock.now
        assert request.completion_deadline == request.request_date + timedelta(days=30)
        assert request.completed_date is None

    @pytest.mark.asyncio
    async def test_requests_listed_per_user(self, gdpr, clock):
        first = await submit(gdpr)
        clock.advance(hours=1)
        second = await handle_data_subject_request(gdpr, "u1", RequestType.PORTABILITY, "Export please")
        await submit(gdpr, user_id="u2")

        requests = await gdpr.get_user_requests("u1")
        assert [r.id for r in requests] == [first, second]

    @pytest.mark.asyncio
    async def test_unknown_request_raises(self, gdpr):
        with pytest.raises(RequestNotFoundError):
            await gdpr.get_request("missing")


class TestUpdateRequestStatus:
    @pytest.mark.asyncio
    async def test_pending_to_in_progress_to_completed(self, gdpr, clock):
        request_id = await submit(gdpr)

        await gdpr.update_request_status(request_id, SubjectRequestUpdate(status=RequestStatus.IN_PROGRESS))
        clock.advance(days=3)
        request = await gdpr.update_request_status(
            request_id, SubjectRequestUpdate(status=RequestStatus.COMPLETED, response_data="Export sent")
        )

        assert request.status == RequestStatus.COMPLETED
        assert request.completed_date == clock.now
        assert request.response_data == "Export sent"

    @pytest.mark.asyncio
    async def test_rejection_requires_reason(self, gdpr):
        request_id = await submit(gdpr)

        with pytest.raises(ValidationError):
            await gdpr.update_request_status(request_id, SubjectRequestUpdate(status=RequestStatus.REJECTED))

        request = await gdpr.update_request_status(
            request_id,
            SubjectRequestUpdate(status=RequestStatus.REJECTED, rejection_reason="Identity not verified"),
        )
        assert request.rejection_reason == "Identity not verified"
        assert request.completed_date is not None

    @pytest.mark.asyncio
    async def test_terminal_states_cannot_change(self, gdpr):
        request_id = await submit(gdpr)
        await gdpr.update_request_status(request_id, SubjectRequestUpdate(status=RequestStatus.COMPLETED))

        with pytest.raises(InvalidStatusTransitionError):
            await gdpr.update_request_status(request_id, SubjectRequestUpdate(status=RequestStatus.IN_PROGRESS))

    @pytest.mark.asyncio
    async def test_cannot_go_back_to_pending(self, gdpr):
        request_id = await submit(gdpr)
        await gdpr.update_request_status(request_id, SubjectRequestUpdate(status=RequestStatus.IN_PROGRESS))

        with pytest.raises(InvalidStatusTransitionError):
            await gdpr.update_request_status(request_id, SubjectRequestUpdate(status=RequestStatus.PENDING))


class TestOverdueRequests:
    @pytest.mark.asyncio
    async def test_deadline_is_advisory(self, gdpr, clock):
        request_id = await submit(gdpr)
        clock.advance(days=31)

        overdue = await gdpr.get_overdue_requests()

        assert [r.id for r in overdue] == [request_id]
        assert overdue[0].status == RequestStatus.PENDING
        assert overdue[0].is_overdue(clock.now)

    @pytest.mark.asyncio
    async def test_closed_requests_are_not_overdue(self, gdpr, clock):
        request_id = await submit(gdpr)
        await gdpr.update_request_status(request_id, SubjectRequestUpdate(status=RequestStatus.COMPLETED))
        clock.advance(days=31)

        assert await gdpr.get_overdue_requests() == []

    @pytest.mark.asyncio
    async def test_request_within_deadline_is_not_overdue(self, gdpr, clock):
        await submit(gdpr)
        clock.advance(days=30)

        assert await gdpr.get_overdue_requests() == []
