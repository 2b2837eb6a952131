from sqlalchemy import Column, DateTime, Index, Integer, String, Text

from boligdeposit.database import Base
from boligdeposit.utils.clock import utcnow


class AuditLogEntry(Base):
    """Append-only GDPR audit trail. Each row carries a hash of its own content."""

    __tablename__ = "gdpr_audit_log"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    timestamp = Column(DateTime, default=utcnow, nullable=False)
    action = Column(String(64), nullable=False)
    user_id = Column(String(64), nullable=False)
    # JSON-serialized details
    details = Column(Text, nullable=False)
    hash = Column(String(64), nullable=False)

    __table_args__ = (Index("idx_audit_user_action", "user_id", "action"),)
