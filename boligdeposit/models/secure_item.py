from sqlalchemy import Column, DateTime, String, Text

from boligdeposit.database import Base
from boligdeposit.utils.clock import utcnow


class SecureItem(Base):
    """Encrypted key-value entry behind the secure storage service."""

    __tablename__ = "secure_items"

    key = Column(String(255), primary_key=True)
    # Fernet token of the JSON-encoded value
    value = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    expires_at = Column(DateTime, nullable=True)

    def is_expired(self, now) -> bool:
        return self.expires_at is not None and now > self.expires_at
