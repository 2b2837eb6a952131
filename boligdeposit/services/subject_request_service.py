"""
Data Subject Request Queue (GDPR Articles 15-22)

Requests are created pending with a completion deadline 30 days out. The
deadline is advisory: overdue requests can be listed, but nothing changes
their status automatically.
"""

import logging
import uuid
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boligdeposit.constants.gdpr import REQUEST_TRANSITIONS, AuditAction, RequestStatus
from boligdeposit.exceptions import InvalidStatusTransitionError, RequestNotFoundError, ValidationError
from boligdeposit.models.data_subject_request import DataSubjectRequest
from boligdeposit.schemas.gdpr import (
    SubjectRequestCreate,
    SubjectRequestOut,
    SubjectRequestUpdate,
    to_audit_details,
)
from boligdeposit.services.audit_service import AuditTrail
from boligdeposit.utils.clock import utcnow

logger = logging.getLogger(__name__)

COMPLETION_DEADLINE_DAYS = 30


class SubjectRequestQueue:
    def __init__(self, db: AsyncSession, audit: AuditTrail, deadline_days: int = COMPLETION_DEADLINE_DAYS):
        self.db = db
        self.audit = audit
        self.deadline_days = deadline_days

    async def submit_data_subject_request(
        self, request: SubjectRequestCreate, now: datetime | None = None
    ) -> DataSubjectRequest:
        now = now or utcnow()
        record = DataSubjectRequest(
            id=str(uuid.uuid4()),
            user_id=request.user_id,
            type=request.type,
            status=RequestStatus.PENDING,
            request_date=now,
            completion_deadline=now + timedelta(days=self.deadline_days),
            request_details=request.request_details,
        )
        self.db.add(record)
        await self.db.flush()

        await self.audit.append(
            AuditAction.DATA_SUBJECT_REQUEST, request.user_id, to_audit_details(SubjectRequestOut, record), now=now
        )
        logger.info("Data subject request %s submitted: user=%s type=%s", record.id, record.user_id, request.type.value)
        return record

    async def get_request(self, request_id: str) -> DataSubjectRequest:
        record = await self.db.get(DataSubjectRequest, request_id)
        if record is None:
            raise RequestNotFoundError(request_id)
        return record

    async def get_user_requests(self, user_id: str) -> list[DataSubjectRequest]:
        result = await self.db.execute(
            select(DataSubjectRequest)
            .where(DataSubjectRequest.user_id == user_id)
            .order_by(DataSubjectRequest.request_date)
        )
        return list(result.scalars().all())

    async def update_request_status(
        self, request_id: str, update: SubjectRequestUpdate, now: datetime | None = None
    ) -> DataSubjectRequest:
        now = now or utcnow()
        record = await self.get_request(request_id)
        current = RequestStatus(record.status)
        target = update.status

        if target not in REQUEST_TRANSITIONS[current]:
            raise InvalidStatusTransitionError(current.value, target.value, resource_type="DataSubjectRequest")
        if target == RequestStatus.REJECTED and not update.rejection_reason:
            raise ValidationError("A rejection reason is required", field="rejection_reason")

        record.status = target
        if update.response_data is not None:
            record.response_data = update.response_data
        if target == RequestStatus.REJECTED:
            record.rejection_reason = update.rejection_reason
        if target in (RequestStatus.COMPLETED, RequestStatus.REJECTED):
            record.completed_date = now
        await self.db.flush()

        await self.audit.append(
            AuditAction.DATA_SUBJECT_REQUEST_UPDATED,
            record.user_id,
            {"request_id": record.id, "from": current, "to": target},
            now=now,
        )
        logger.info("Data subject request %s: %s -> %s", record.id, current.value, target.value)
        return record

    async def get_overdue_requests(self, now: datetime | None = None) -> list[DataSubjectRequest]:
        """Open requests whose completion deadline has passed."""
        now = now or utcnow()
        result = await self.db.execute(
            select(DataSubjectRequest)
            .where(
                DataSubjectRequest.status.in_([RequestStatus.PENDING, RequestStatus.IN_PROGRESS]),
                DataSubjectRequest.completion_deadline < now,
            )
            .order_by(DataSubjectRequest.completion_deadline)
        )
        return list(result.scalars().all())
