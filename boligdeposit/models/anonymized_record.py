from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from boligdeposit.database import Base
from boligdeposit.utils.clock import utcnow


class AnonymizedRecord(Base):
    """Non-reversible trace of an erased user, kept for legal audits."""

    __tablename__ = "anonymized_users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    # SHA-256 of the erased user id
    original_user_id = Column(String(64), nullable=False, index=True)
    erasure_date = Column(DateTime, nullable=False, default=utcnow)
    reason = Column(Text, nullable=False)
    retained_for_compliance = Column(Boolean, nullable=False, default=True)
