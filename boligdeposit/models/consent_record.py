"""
ConsentRecord model for GDPR consent tracking (Article 7).

Holds the current consent decision per user and cookie category. Recording a
new decision for the same category replaces the previous row; the history of
decisions lives in the audit trail.
"""

from sqlalchemy import JSON, Boolean, Column, DateTime, Enum, Index, Integer, String, UniqueConstraint

from boligdeposit.constants.gdpr import ConsentType, LawfulBasis
from boligdeposit.database import Base
from boligdeposit.utils.clock import utcnow


class ConsentRecord(Base):
    __tablename__ = "consent_records"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    consent_type = Column(Enum(ConsentType), nullable=False)
    granted = Column(Boolean, nullable=False, default=False)
    lawful_basis = Column(Enum(LawfulBasis), nullable=False)
    # List of ProcessingPurpose values
    purposes = Column(JSON, nullable=False, default=list)
    timestamp = Column(DateTime, nullable=False, default=utcnow)
    expires_at = Column(DateTime, nullable=False)
    # IPv6 addresses can be up to 39 chars; 45 allows for mapped IPv4 addresses
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(512), nullable=True)
    consent_string = Column(String(1024), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "consent_type", name="uq_consent_user_type"),
        Index("idx_consent_user_expires", "user_id", "expires_at"),
    )

    def is_valid(self, now) -> bool:
        return bool(self.granted) and now <= self.expires_at

    def __repr__(self) -> str:
        return f"<ConsentRecord(user_id={self.user_id}, type={self.consent_type}, granted={self.granted})>"
