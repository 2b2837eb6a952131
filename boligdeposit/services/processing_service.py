"""
Processing Ledger (GDPR Article 30)

Append-only record of every time personal data is processed, tagged with
purpose, lawful basis and retention date. The only permitted change to a
stored row is the one-way ``is_anonymized`` flip made by the anonymization
helpers; rows are deleted only by the erasure workflow.
"""

import logging
import uuid
from datetime import datetime, timedelta

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from boligdeposit.constants.auth import SYSTEM_USER_ID
from boligdeposit.constants.gdpr import AuditAction
from boligdeposit.models.processing_record import DataProcessingRecord
from boligdeposit.schemas.gdpr import ProcessingCreate, ProcessingOut, to_audit_details
from boligdeposit.services.audit_service import AuditTrail
from boligdeposit.utils.clock import to_naive_utc, utcnow
from boligdeposit.utils.hashing import processing_hash

logger = logging.getLogger(__name__)

DATA_RETENTION_DAYS = 2555  # 7 years, Danish bookkeeping requirement


def compute_audit_hash(record: DataProcessingRecord) -> str:
    return processing_hash(record.hash_fields())


class ProcessingLedger:
    def __init__(self, db: AsyncSession, audit: AuditTrail, retention_days: int = DATA_RETENTION_DAYS):
        self.db = db
        self.audit = audit
        self.retention_days = retention_days

    async def record_data_processing(
        self, processing: ProcessingCreate, now: datetime | None = None
    ) -> DataProcessingRecord:
        now = now or utcnow()
        retention_until = processing.data_retention_until or now + timedelta(days=self.retention_days)

        record = DataProcessingRecord(
            id=str(uuid.uuid4()),
            user_id=processing.user_id,
            data_category=processing.data_category,
            purpose=processing.purpose,
            lawful_basis=processing.lawful_basis,
            processing_date=now,
            data_retention_until=to_naive_utc(retention_until),
            is_anonymized=processing.is_anonymized,
        )
        record.audit_hash = compute_audit_hash(record)
        self.db.add(record)
        await self.db.flush()

        await self.audit.append(
            AuditAction.DATA_PROCESSED, processing.user_id, to_audit_details(ProcessingOut, record), now=now
        )
        logger.info(
            "Data processing recorded: user=%s category=%s purpose=%s",
            record.user_id,
            processing.data_category.value,
            processing.purpose.value,
        )
        return record

    async def get_processing_records(self, user_id: str) -> list[DataProcessingRecord]:
        result = await self.db.execute(
            select(DataProcessingRecord)
            .where(DataProcessingRecord.user_id == user_id)
            .order_by(DataProcessingRecord.processing_date, DataProcessingRecord.id)
        )
        return list(result.scalars().all())

    @staticmethod
    def verify_record(record: DataProcessingRecord) -> bool:
        return record.audit_hash == compute_audit_hash(record)

    async def anonymize_records(self, user_id: str) -> int:
        """Flip ``is_anonymized`` on the user's records that are not anonymized yet."""
        result = await self.db.execute(
            update(DataProcessingRecord)
            .where(
                DataProcessingRecord.user_id == user_id,
                DataProcessingRecord.is_anonymized.is_(False),
            )
            .values(is_anonymized=True)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    async def anonymize_inactive_users(self, inactive_days: int, now: datetime | None = None) -> int:
        """
        Anonymize the ledger of every user whose latest processing is older
        than ``inactive_days``.

        Returns the number of records flipped.
        """
        now = now or utcnow()
        cutoff = now - timedelta(days=inactive_days)
        result = await self.db.execute(
            select(DataProcessingRecord.user_id)
            .group_by(DataProcessingRecord.user_id)
            .having(func.max(DataProcessingRecord.processing_date) < cutoff)
        )
        user_ids = list(result.scalars().all())

        anonymized = 0
        for user_id in user_ids:
            anonymized += await self.anonymize_records(user_id)

        await self.audit.append(
            AuditAction.ANONYMIZATION_PROCESS,
            SYSTEM_USER_ID,
            {"cutoff_date": cutoff, "users": len(user_ids), "records": anonymized, "timestamp": now},
            now=now,
        )
        logger.info("anonymization: %d records across %d inactive users (cutoff %s)", anonymized, len(user_ids), cutoff)
        return anonymized

    async def remove_processing_records(self, user_id: str) -> int:
        result = await self.db.execute(delete(DataProcessingRecord).where(DataProcessingRecord.user_id == user_id))
        return result.rowcount or 0
