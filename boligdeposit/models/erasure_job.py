"""
ErasureJob model.

Persisted marker for a right-to-erasure run. ``current_step`` is committed
after every completed step so an interrupted erasure can be resumed.
"""

import enum

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Index, Integer, String, Text

from boligdeposit.database import Base
from boligdeposit.utils.clock import utcnow


class ErasureStatus(str, enum.Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class ErasureStep(str, enum.Enum):
    """Erasure steps in execution order."""

    STARTED = "started"
    PERSONAL_DATA_REMOVED = "personal_data_removed"
    PROCESSING_RECORDS_REMOVED = "processing_records_removed"
    CONSENTS_REMOVED = "consents_removed"
    COMMUNICATION_REMOVED = "communication_removed"
    ANONYMIZED_RECORD_CREATED = "anonymized_record_created"


ERASURE_STEP_ORDER = list(ErasureStep)


class ErasureJob(Base):
    __tablename__ = "erasure_jobs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    reason = Column(Text, nullable=False)
    status = Column(Enum(ErasureStatus), nullable=False, default=ErasureStatus.IN_PROGRESS)
    current_step = Column(Enum(ErasureStep), nullable=False, default=ErasureStep.STARTED)
    anonymized_record_id = Column(Integer, ForeignKey("anonymized_users.id", ondelete="SET NULL"), nullable=True)
    error = Column(Text, nullable=True)
    started_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (Index("idx_erasure_status", "status"),)

    def remaining_steps(self) -> list[ErasureStep]:
        """Steps still to run after ``current_step``."""
        index = ERASURE_STEP_ORDER.index(ErasureStep(self.current_step))
        return ERASURE_STEP_ORDER[index + 1 :]

    def __repr__(self) -> str:
        return f"<ErasureJob(id={self.id}, user_id={self.user_id}, status={self.status}, step={self.current_step})>"
