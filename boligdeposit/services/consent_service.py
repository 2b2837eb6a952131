"""
Consent Store (GDPR Article 7)

Keeps the current consent decision per (user, consent type). Recording a
decision replaces the previous one for that type and writes a
CONSENT_RECORDED audit entry in the same transaction. Essential consent is
always stored as granted.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from boligdeposit.constants.gdpr import AuditAction, ConsentType, LawfulBasis
from boligdeposit.models.consent_record import ConsentRecord
from boligdeposit.models.privacy_policy import PrivacyPolicyAcceptance
from boligdeposit.schemas.gdpr import ConsentCreate, ConsentOut, PolicyAcceptanceOut, to_audit_details
from boligdeposit.services.audit_service import AuditTrail
from boligdeposit.utils.clock import utcnow

logger = logging.getLogger(__name__)

CONSENT_EXPIRY_DAYS = 365


class ConsentStore:
    def __init__(self, db: AsyncSession, audit: AuditTrail, expiry_days: int = CONSENT_EXPIRY_DAYS):
        self.db = db
        self.audit = audit
        self.expiry_days = expiry_days

    async def _current(self, user_id: str, consent_type: ConsentType) -> ConsentRecord | None:
        result = await self.db.execute(
            select(ConsentRecord).where(
                ConsentRecord.user_id == user_id,
                ConsentRecord.consent_type == ConsentType(consent_type),
            )
        )
        return result.scalars().first()

    async def record_consent(self, consent: ConsentCreate, now: datetime | None = None) -> ConsentRecord:
        now = now or utcnow()
        granted = consent.granted
        lawful_basis = consent.lawful_basis
        if consent.consent_type == ConsentType.ESSENTIAL and not granted:
            logger.warning("consent: essential consent cannot be revoked (user=%s)", consent.user_id)
            granted = True
            lawful_basis = LawfulBasis.CONTRACT if lawful_basis == LawfulBasis.NONE else lawful_basis

        existing = await self._current(consent.user_id, consent.consent_type)
        if existing is not None:
            await self.db.delete(existing)
            # The delete must reach the database before the insert hits the unique constraint
            await self.db.flush()

        record = ConsentRecord(
            user_id=consent.user_id,
            consent_type=consent.consent_type,
            granted=granted,
            lawful_basis=lawful_basis,
            purposes=[p.value for p in consent.purposes],
            timestamp=now,
            expires_at=now + timedelta(days=self.expiry_days),
            ip_address=consent.ip_address,
            user_agent=consent.user_agent,
            consent_string=consent.consent_string,
        )
        self.db.add(record)
        await self.db.flush()

        await self.audit.append(
            AuditAction.CONSENT_RECORDED, consent.user_id, to_audit_details(ConsentOut, record), now=now
        )
        logger.info(
            "Consent recorded: user=%s type=%s granted=%s",
            consent.user_id,
            ConsentType(consent.consent_type).value,
            granted,
        )
        return record

    async def get_consents(self, user_id: str) -> list[ConsentRecord]:
        """Return the user's current consent records in insertion order."""
        result = await self.db.execute(
            select(ConsentRecord).where(ConsentRecord.user_id == user_id).order_by(ConsentRecord.id)
        )
        return list(result.scalars().all())

    async def has_valid_consent(self, user_id: str, consent_type: ConsentType, now: datetime | None = None) -> bool:
        record = await self._current(user_id, consent_type)
        if record is None:
            return False
        return record.is_valid(now or utcnow())

    async def remove_consents(self, user_id: str) -> int:
        result = await self.db.execute(delete(ConsentRecord).where(ConsentRecord.user_id == user_id))
        return result.rowcount or 0

    async def record_privacy_policy_acceptance(
        self,
        user_id: str,
        policy_version: str,
        ip_address: str | None = None,
        now: datetime | None = None,
    ) -> PrivacyPolicyAcceptance:
        now = now or utcnow()
        acceptance = await self.db.get(PrivacyPolicyAcceptance, user_id)
        if acceptance is None:
            acceptance = PrivacyPolicyAcceptance(user_id=user_id)
            self.db.add(acceptance)
        acceptance.policy_version = policy_version
        acceptance.accepted_at = now
        acceptance.ip_address = ip_address or "unknown"
        await self.db.flush()

        await self.audit.append(
            AuditAction.PRIVACY_POLICY_ACCEPTED, user_id, to_audit_details(PolicyAcceptanceOut, acceptance), now=now
        )
        logger.info("Privacy policy accepted: user=%s version=%s", user_id, policy_version)
        return acceptance

    async def remove_privacy_policy_acceptance(self, user_id: str) -> int:
        result = await self.db.execute(
            delete(PrivacyPolicyAcceptance).where(PrivacyPolicyAcceptance.user_id == user_id)
        )
        return result.rowcount or 0
