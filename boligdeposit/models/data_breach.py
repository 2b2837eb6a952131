"""
DataBreach model (GDPR Articles 33/34 incident register).
"""

from sqlalchemy import JSON, Column, DateTime, Enum, String, Text

from boligdeposit.constants.gdpr import BreachRiskLevel, BreachStatus
from boligdeposit.database import Base
from boligdeposit.utils.clock import utcnow


class DataBreach(Base):
    __tablename__ = "data_breaches"

    id = Column(String(36), primary_key=True)
    description = Column(Text, nullable=False)
    risk_level = Column(Enum(BreachRiskLevel), nullable=False)
    affected_user_ids = Column(JSON, nullable=False, default=list)
    # List of DataCategory values
    data_categories = Column(JSON, nullable=False, default=list)
    reported_at = Column(DateTime, nullable=False, default=utcnow)
    status = Column(Enum(BreachStatus), nullable=False, default=BreachStatus.REPORTED)
    notified_at = Column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<DataBreach(id={self.id}, risk={self.risk_level}, status={self.status})>"
