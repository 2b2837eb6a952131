"""
DataProcessingRecord model (GDPR Article 30 record of processing).

Rows are append-only. ``is_anonymized`` is the only column that may change
after insert, and only from False to True.
"""

from sqlalchemy import Boolean, Column, DateTime, Enum, Index, String

from boligdeposit.constants.gdpr import DataCategory, LawfulBasis, ProcessingPurpose
from boligdeposit.database import Base
from boligdeposit.utils.clock import utcnow


class DataProcessingRecord(Base):
    __tablename__ = "processing_records"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    data_category = Column(Enum(DataCategory), nullable=False)
    purpose = Column(Enum(ProcessingPurpose), nullable=False)
    lawful_basis = Column(Enum(LawfulBasis), nullable=False)
    processing_date = Column(DateTime, nullable=False, default=utcnow)
    data_retention_until = Column(DateTime, nullable=False)
    is_anonymized = Column(Boolean, nullable=False, default=False)
    # SHA-256 hex digest
    audit_hash = Column(String(64), nullable=False)

    __table_args__ = (Index("idx_processing_user_date", "user_id", "processing_date"),)

    def hash_fields(self) -> dict:
        """Fields covered by ``audit_hash``."""
        return {
            "user_id": self.user_id,
            "data_category": DataCategory(self.data_category).value,
            "purpose": ProcessingPurpose(self.purpose).value,
            "lawful_basis": LawfulBasis(self.lawful_basis).value,
            "data_retention_until": self.data_retention_until,
        }

    def __repr__(self) -> str:
        return f"<DataProcessingRecord(id={self.id}, user_id={self.user_id}, category={self.data_category})>"
