"""
Right to Erasure (GDPR Article 17)

Erasure runs as a saga over a persisted ``ErasureJob``. Each step commits
together with the job's ``current_step``, so a run interrupted by a crash or
a storage failure picks up at the first unfinished step when resumed. Every
step is safe to repeat.

Erasure is refused while the user holds an active lease contract. Financial
records are kept for the statutory bookkeeping period and are never touched
here; processing records, consents, the privacy policy acceptance and the
cached cookie choices are removed outright.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from cryptography.fernet import Fernet
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from boligdeposit.constants.gdpr import (
    ACTIVE_CONTRACT_STATUS,
    COMMUNICATION_KEY,
    CONTRACTS_KEY,
    COOKIE_CONSENT_KEY,
    PREFERENCES_KEY,
    USER_DATA_KEY,
    AuditAction,
)
from boligdeposit.models.anonymized_record import AnonymizedRecord
from boligdeposit.models.erasure_job import ErasureJob, ErasureStatus, ErasureStep
from boligdeposit.services.audit_service import AuditTrail
from boligdeposit.services.consent_service import ConsentStore
from boligdeposit.services.processing_service import ProcessingLedger
from boligdeposit.services.secure_storage import SecureStorage
from boligdeposit.utils.clock import utcnow
from boligdeposit.utils.hashing import hash_sensitive_data

logger = logging.getLogger(__name__)


class ErasureOutcome(str, enum.Enum):
    ERASED = "erased"
    BLOCKED = "blocked"
    FAILED = "failed"


@dataclass
class ErasureResult:
    status: ErasureOutcome
    user_id: str
    job_id: Optional[int] = None
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.status == ErasureOutcome.ERASED


def has_active_contract(contracts: Any) -> bool:
    if not contracts:
        return False
    return any(
        isinstance(contract, dict) and contract.get("status") == ACTIVE_CONTRACT_STATUS for contract in contracts
    )


class ErasureWorkflow:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        fernet: Fernet,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.fernet = fernet
        self.clock = clock

    def _storage(self, db: AsyncSession, now: datetime) -> SecureStorage:
        return SecureStorage(db, self.fernet, now=now)

    async def can_erase_data(self, user_id: str) -> bool:
        """False while any of the user's contracts is active."""
        async with self.session_factory() as db:
            contracts = await self._storage(db, self.clock()).get_item(CONTRACTS_KEY.format(user_id=user_id))
            # Expired items are deleted on read
            await db.commit()
        return not has_active_contract(contracts)

    async def erase_user_data(self, user_id: str, reason: str = "user_request") -> ErasureResult:
        if not await self.can_erase_data(user_id):
            logger.warning("erasure: refused for user %s, active contract exists", user_id)
            return ErasureResult(ErasureOutcome.BLOCKED, user_id)

        async with self.session_factory() as db:
            job = ErasureJob(
                user_id=user_id,
                reason=reason,
                status=ErasureStatus.IN_PROGRESS,
                current_step=ErasureStep.STARTED,
                started_at=self.clock(),
                updated_at=self.clock(),
            )
            db.add(job)
            await db.commit()
            job_id = job.id

        logger.info("erasure: job %d started for user %s", job_id, user_id)
        return await self._run(job_id)

    async def resume_erasures(self) -> list[ErasureResult]:
        """Re-run every erasure job that has not completed."""
        async with self.session_factory() as db:
            result = await db.execute(
                select(ErasureJob.id)
                .where(ErasureJob.status.in_([ErasureStatus.IN_PROGRESS, ErasureStatus.FAILED]))
                .order_by(ErasureJob.id)
            )
            job_ids = list(result.scalars().all())

        results = []
        for job_id in job_ids:
            logger.info("erasure: resuming job %d", job_id)
            results.append(await self._run(job_id))
        return results

    async def _run(self, job_id: int) -> ErasureResult:
        async with self.session_factory() as db:
            job = await db.get(ErasureJob, job_id)
            user_id = job.user_id
            try:
                if job.status == ErasureStatus.FAILED:
                    job.status = ErasureStatus.IN_PROGRESS
                    job.error = None

                for step in job.remaining_steps():
                    now = self.clock()
                    await self._steps[step](self, db, job, now)
                    job.current_step = step
                    job.updated_at = now
                    await db.commit()
                    logger.debug("erasure: job %d reached %s", job_id, step.value)

                now = self.clock()
                job.status = ErasureStatus.COMPLETED
                job.completed_at = now
                await AuditTrail(db).append(
                    AuditAction.DATA_ERASED,
                    user_id,
                    {"reason": job.reason, "job_id": job_id, "anonymized_record_id": job.anonymized_record_id},
                    now=now,
                )
                await db.commit()
            except Exception as exc:
                await db.rollback()
                logger.error("erasure: job %d for user %s failed: %s", job_id, user_id, exc)
                await self._mark_failed(job_id, user_id, str(exc))
                return ErasureResult(ErasureOutcome.FAILED, user_id, job_id=job_id, error=str(exc))

        logger.info("erasure: job %d completed for user %s", job_id, user_id)
        return ErasureResult(ErasureOutcome.ERASED, user_id, job_id=job_id)

    async def _mark_failed(self, job_id: int, user_id: str, error: str) -> None:
        async with self.session_factory() as db:
            job = await db.get(ErasureJob, job_id)
            now = self.clock()
            job.status = ErasureStatus.FAILED
            job.error = error
            job.updated_at = now
            await AuditTrail(db).append(
                AuditAction.DATA_ERASURE_ERROR, user_id, {"error": error, "job_id": job_id}, now=now
            )
            await db.commit()

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _remove_personal_data(self, db: AsyncSession, job: ErasureJob, now: datetime) -> None:
        storage = self._storage(db, now)
        await storage.remove_item(USER_DATA_KEY.format(user_id=job.user_id))
        await storage.remove_item(PREFERENCES_KEY.format(user_id=job.user_id))
        await storage.remove_item(COOKIE_CONSENT_KEY.format(user_id=job.user_id))

    async def _remove_processing_records(self, db: AsyncSession, job: ErasureJob, now: datetime) -> None:
        removed = await ProcessingLedger(db, AuditTrail(db)).remove_processing_records(job.user_id)
        logger.debug("erasure: removed %d processing records for user %s", removed, job.user_id)

    async def _remove_consents(self, db: AsyncSession, job: ErasureJob, now: datetime) -> None:
        consents = ConsentStore(db, AuditTrail(db))
        await consents.remove_consents(job.user_id)
        await consents.remove_privacy_policy_acceptance(job.user_id)

    async def _remove_communication(self, db: AsyncSession, job: ErasureJob, now: datetime) -> None:
        await self._storage(db, now).remove_item(COMMUNICATION_KEY.format(user_id=job.user_id))

    async def _create_anonymized_record(self, db: AsyncSession, job: ErasureJob, now: datetime) -> None:
        if job.anonymized_record_id is not None:
            return
        record = AnonymizedRecord(
            original_user_id=hash_sensitive_data(job.user_id),
            erasure_date=now,
            reason=job.reason,
            retained_for_compliance=True,
        )
        db.add(record)
        await db.flush()
        job.anonymized_record_id = record.id

    _steps: dict[ErasureStep, Callable[..., Awaitable[None]]] = {
        ErasureStep.PERSONAL_DATA_REMOVED: _remove_personal_data,
        ErasureStep.PROCESSING_RECORDS_REMOVED: _remove_processing_records,
        ErasureStep.CONSENTS_REMOVED: _remove_consents,
        ErasureStep.COMMUNICATION_REMOVED: _remove_communication,
        ErasureStep.ANONYMIZED_RECORD_CREATED: _create_anonymized_record,
    }
