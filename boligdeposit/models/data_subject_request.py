"""
DataSubjectRequest model.

Tracks access/erasure/portability (etc.) requests. ``completion_deadline`` is
advisory: nothing changes a request's status when the deadline passes.
"""

from sqlalchemy import Column, DateTime, Enum, Index, String, Text

from boligdeposit.constants.gdpr import RequestStatus, RequestType
from boligdeposit.database import Base
from boligdeposit.utils.clock import utcnow


class DataSubjectRequest(Base):
    __tablename__ = "data_subject_requests"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    type = Column(Enum(RequestType), nullable=False)
    status = Column(Enum(RequestStatus), nullable=False, default=RequestStatus.PENDING)
    request_date = Column(DateTime, nullable=False, default=utcnow)
    completion_deadline = Column(DateTime, nullable=False)
    completed_date = Column(DateTime, nullable=True)
    request_details = Column(Text, nullable=False, default="")
    response_data = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    __table_args__ = (Index("idx_dsr_status_deadline", "status", "completion_deadline"),)

    @property
    def is_open(self) -> bool:
        return self.status in (RequestStatus.PENDING, RequestStatus.IN_PROGRESS)

    def is_overdue(self, now) -> bool:
        return self.is_open and now > self.completion_deadline

    def __repr__(self) -> str:
        return f"<DataSubjectRequest(id={self.id}, type={self.type}, status={self.status})>"
