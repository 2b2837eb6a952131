"""
GDPR Audit Trail

Append-only log of every consent, processing, request and erasure event.
Entries are added to the caller's session so they commit (or roll back)
together with the change they describe. Each entry carries a SHA-256 hash of
its own action, user and details; the log is not chained, so the hash shows
tampering with an entry but not deletion of one.
"""

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from boligdeposit.models.audit_log import AuditLogEntry
from boligdeposit.utils.clock import utcnow
from boligdeposit.utils.hashing import audit_entry_hash, canonical_json

logger = logging.getLogger(__name__)


class AuditTrail:
    """Writes audit entries into an existing session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def append(self, action: str, user_id: str, details: Any, now=None) -> AuditLogEntry:
        action = getattr(action, "value", action)
        serialized = canonical_json(details)
        entry = AuditLogEntry(
            timestamp=now or utcnow(),
            action=action,
            user_id=user_id,
            details=serialized,
            hash=audit_entry_hash(action, user_id, serialized),
        )
        self.db.add(entry)
        logger.debug("audit: %s user=%s", action, user_id)
        return entry

    @staticmethod
    def verify_entry(entry: AuditLogEntry) -> bool:
        return entry.hash == audit_entry_hash(entry.action, entry.user_id, entry.details)

    async def integrity_check(self, batch_size: int = 500) -> tuple[int, int]:
        """
        Recompute every entry hash.

        Returns (total_entries, failed_entries). Entry contents are never
        returned; the audit trail has no read API.
        """
        total = (await self.db.execute(select(func.count(AuditLogEntry.id)))).scalar_one()
        failed = 0
        offset = 0
        while offset < total:
            result = await self.db.execute(
                select(AuditLogEntry).order_by(AuditLogEntry.id).offset(offset).limit(batch_size)
            )
            for entry in result.scalars().all():
                if not self.verify_entry(entry):
                    failed += 1
                    logger.warning("audit: hash mismatch on entry %d (%s)", entry.id, entry.action)
            offset += batch_size
        return total, failed
