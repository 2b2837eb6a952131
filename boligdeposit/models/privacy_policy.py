from sqlalchemy import Column, DateTime, String

from boligdeposit.database import Base
from boligdeposit.utils.clock import utcnow


class PrivacyPolicyAcceptance(Base):
    """Latest privacy policy version accepted by each user."""

    __tablename__ = "privacy_policy_acceptances"

    user_id = Column(String(64), primary_key=True)
    policy_version = Column(String(20), nullable=False)
    accepted_at = Column(DateTime, nullable=False, default=utcnow)
    ip_address = Column(String(45), nullable=True)
