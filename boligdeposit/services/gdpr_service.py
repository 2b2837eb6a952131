"""
GDPR compliance service.

``GDPRCompliance`` is the single entry point the HTTP layer and the scheduler
use. It is built once at application start and stored on ``app.state``; each
call opens its own session, wires the component services onto it, and
commits once, so a change and its audit entry are written together. Database
failures surface as ``StorageError``.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from boligdeposit.config import Settings
from boligdeposit.constants.gdpr import (
    CONTRACTS_KEY,
    COOKIE_CONSENT_KEY,
    ConsentType,
    DataCategory,
    LawfulBasis,
    ProcessingPurpose,
    RequestType,
)
from boligdeposit.exceptions import BoligDepositError, StorageError
from boligdeposit.models.consent_record import ConsentRecord
from boligdeposit.models.data_breach import DataBreach
from boligdeposit.models.data_subject_request import DataSubjectRequest
from boligdeposit.models.privacy_policy import PrivacyPolicyAcceptance
from boligdeposit.models.processing_record import DataProcessingRecord
from boligdeposit.schemas.gdpr import (
    AuditIntegrityReport,
    BreachCreate,
    ConsentCreate,
    ProcessingCreate,
    SubjectRequestCreate,
    SubjectRequestUpdate,
)
from boligdeposit.services.api_client import ApiClient
from boligdeposit.services.audit_service import AuditTrail
from boligdeposit.services.breach_service import BreachRegister
from boligdeposit.services.consent_service import ConsentStore
from boligdeposit.services.cookie_consent_service import (
    CookieConsentBanner,
    build_consent_requests,
    decode_consent_string,
    encode_consent_string,
    normalize_choices,
)
from boligdeposit.services.erasure_service import ErasureResult, ErasureWorkflow
from boligdeposit.services.export_service import DataExporter
from boligdeposit.services.processing_service import ProcessingLedger
from boligdeposit.services.secure_storage import SecureStorage
from boligdeposit.services.subject_request_service import SubjectRequestQueue
from boligdeposit.utils.clock import utcnow
from boligdeposit.utils.crypto import build_fernet

logger = logging.getLogger(__name__)


class GDPRCompliance:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
        api_client: Optional[ApiClient] = None,
    ):
        self.session_factory = session_factory
        self.settings = settings
        self.clock = clock
        self.api_client = api_client
        self.fernet = build_fernet(settings.storage_encryption_key, settings.secret_key)
        self.erasure = ErasureWorkflow(session_factory, self.fernet, clock=clock)

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as db:
            try:
                yield db
                await db.commit()
            except SQLAlchemyError as exc:
                await db.rollback()
                logger.error("gdpr: %s failed: %s", operation, exc)
                raise StorageError(f"Could not complete {operation}", operation=operation) from exc

    # Component wiring
    def _consents(self, db: AsyncSession) -> ConsentStore:
        return ConsentStore(db, AuditTrail(db), expiry_days=self.settings.consent_expiry_days)

    def _ledger(self, db: AsyncSession) -> ProcessingLedger:
        return ProcessingLedger(db, AuditTrail(db), retention_days=self.settings.data_retention_days)

    def _requests(self, db: AsyncSession) -> SubjectRequestQueue:
        return SubjectRequestQueue(db, AuditTrail(db), deadline_days=self.settings.request_deadline_days)

    def _storage(self, db: AsyncSession, now: datetime) -> SecureStorage:
        return SecureStorage(db, self.fernet, now=now)

    # ------------------------------------------------------------------
    # Consent
    # ------------------------------------------------------------------

    async def record_consent(self, consent: ConsentCreate) -> ConsentRecord:
        async with self._transaction("record_consent") as db:
            return await self._consents(db).record_consent(consent, now=self.clock())

    async def get_consents(self, user_id: str) -> list[ConsentRecord]:
        async with self._transaction("get_consents") as db:
            return await self._consents(db).get_consents(user_id)

    async def has_valid_consent(self, user_id: str, consent_type: ConsentType) -> bool:
        async with self._transaction("has_valid_consent") as db:
            return await self._consents(db).has_valid_consent(user_id, consent_type, now=self.clock())

    async def record_privacy_policy_acceptance(
        self, user_id: str, policy_version: Optional[str] = None, ip_address: Optional[str] = None
    ) -> PrivacyPolicyAcceptance:
        version = policy_version or self.settings.privacy_policy_version
        async with self._transaction("record_privacy_policy_acceptance") as db:
            return await self._consents(db).record_privacy_policy_acceptance(
                user_id, version, ip_address=ip_address, now=self.clock()
            )

    # ------------------------------------------------------------------
    # Processing ledger
    # ------------------------------------------------------------------

    async def record_data_processing(self, processing: ProcessingCreate) -> DataProcessingRecord:
        async with self._transaction("record_data_processing") as db:
            return await self._ledger(db).record_data_processing(processing, now=self.clock())

    async def get_processing_records(self, user_id: str) -> list[DataProcessingRecord]:
        async with self._transaction("get_processing_records") as db:
            return await self._ledger(db).get_processing_records(user_id)

    async def anonymize_inactive_users(self, inactive_days: Optional[int] = None) -> int:
        days = inactive_days if inactive_days is not None else self.settings.anonymization_after_days
        async with self._transaction("anonymize_inactive_users") as db:
            return await self._ledger(db).anonymize_inactive_users(days, now=self.clock())

    # ------------------------------------------------------------------
    # Data subject requests
    # ------------------------------------------------------------------

    async def submit_data_subject_request(self, request: SubjectRequestCreate) -> str:
        async with self._transaction("submit_data_subject_request") as db:
            record = await self._requests(db).submit_data_subject_request(request, now=self.clock())
            return record.id

    async def get_request(self, request_id: str) -> DataSubjectRequest:
        async with self._transaction("get_request") as db:
            return await self._requests(db).get_request(request_id)

    async def get_user_requests(self, user_id: str) -> list[DataSubjectRequest]:
        async with self._transaction("get_user_requests") as db:
            return await self._requests(db).get_user_requests(user_id)

    async def update_request_status(self, request_id: str, update: SubjectRequestUpdate) -> DataSubjectRequest:
        async with self._transaction("update_request_status") as db:
            return await self._requests(db).update_request_status(request_id, update, now=self.clock())

    async def get_overdue_requests(self) -> list[DataSubjectRequest]:
        async with self._transaction("get_overdue_requests") as db:
            return await self._requests(db).get_overdue_requests(now=self.clock())

    # ------------------------------------------------------------------
    # Erasure
    # ------------------------------------------------------------------

    async def can_erase_data(self, user_id: str) -> bool:
        try:
            return await self.erasure.can_erase_data(user_id)
        except SQLAlchemyError as exc:
            raise StorageError("Could not check erasure eligibility", operation="can_erase_data") from exc

    async def erase_user_data(
        self, user_id: str, reason: str = "user_request", token: Optional[str] = None
    ) -> ErasureResult:
        if self.settings.contract_sync_enabled and self.api_client is not None:
            await self.sync_user_contracts(user_id, token=token)
        try:
            return await self.erasure.erase_user_data(user_id, reason)
        except SQLAlchemyError as exc:
            logger.error("gdpr: could not start erasure for user %s: %s", user_id, exc)
            raise StorageError("Could not start data erasure", operation="erase_user_data") from exc

    async def resume_erasures(self) -> list[ErasureResult]:
        try:
            return await self.erasure.resume_erasures()
        except SQLAlchemyError as exc:
            raise StorageError("Could not resume erasures", operation="resume_erasures") from exc

    async def sync_user_contracts(self, user_id: str, token: Optional[str] = None) -> list[dict[str, Any]]:
        """Copy the user's contract list from the upstream API into secure storage."""
        if self.api_client is None:
            raise StorageError("No API client configured for contract sync", operation="sync_user_contracts")
        contracts = await self.api_client.get_user_contracts(token=token)
        await self.set_user_item(CONTRACTS_KEY.format(user_id=user_id), contracts)
        logger.info("gdpr: synced %d contracts for user %s", len(contracts), user_id)
        return contracts

    # ------------------------------------------------------------------
    # Exports
    # ------------------------------------------------------------------

    def _exporter(self, db: AsyncSession, now: datetime) -> DataExporter:
        return DataExporter(self._storage(db, now), self._consents(db), self._ledger(db), AuditTrail(db))

    async def generate_data_export(self, user_id: str) -> dict[str, Any]:
        now = self.clock()
        async with self._transaction("generate_data_export") as db:
            return await self._exporter(db, now).generate_data_export(user_id, now=now)

    async def generate_portability_export(self, user_id: str) -> dict[str, Any]:
        now = self.clock()
        async with self._transaction("generate_portability_export") as db:
            return await self._exporter(db, now).generate_portability_export(user_id, now=now)

    # ------------------------------------------------------------------
    # Secure storage
    # ------------------------------------------------------------------

    async def set_user_item(self, key: str, value: Any, expire_minutes: Optional[int] = None) -> None:
        async with self._transaction("set_item") as db:
            await self._storage(db, self.clock()).set_item(key, value, expire_minutes=expire_minutes)

    async def get_user_item(self, key: str) -> Any:
        async with self._transaction("get_item") as db:
            return await self._storage(db, self.clock()).get_item(key)

    # ------------------------------------------------------------------
    # Cookie consent
    # ------------------------------------------------------------------

    async def set_cookie_consent(self, user_id: str, choices: dict[ConsentType, bool]) -> str:
        """Cache the choices server-side for a few minutes and return the cookie value."""
        async with self._transaction("set_cookie_consent") as db:
            return await self._store_cookie_consent(db, user_id, choices)

    async def _store_cookie_consent(self, db: AsyncSession, user_id: str, choices: dict[ConsentType, bool]) -> str:
        normalized = normalize_choices(choices)
        await self._storage(db, self.clock()).set_temp_item(
            COOKIE_CONSENT_KEY.format(user_id=user_id),
            {k.value: v for k, v in normalized.items()},
            expire_minutes=self.settings.cookie_consent_temp_minutes,
        )
        return encode_consent_string(normalized)

    async def get_cookie_consent(
        self, user_id: Optional[str], cookie_value: Optional[str] = None
    ) -> Optional[dict[ConsentType, bool]]:
        """
        Return the user's cookie choices, or None when no decision is known.

        Looks at the short-lived server copy first, then the user's unexpired
        consent records, then the browser cookie. A visitor without an id
        (nothing submitted yet) is answered from the cookie alone.
        """
        if user_id is None:
            return decode_consent_string(cookie_value)

        async with self._transaction("get_cookie_consent") as db:
            now = self.clock()
            cached = await self._storage(db, now).get_item(COOKIE_CONSENT_KEY.format(user_id=user_id))
            if cached:
                return normalize_choices(cached)

            records = await self._consents(db).get_consents(user_id)
            # Expired consent is no decision; the banner asks again
            if any(now <= r.expires_at for r in records):
                return normalize_choices({r.consent_type: r.is_valid(now) for r in records})

        return decode_consent_string(cookie_value)

    async def submit_cookie_consent(
        self,
        banner: CookieConsentBanner,
        user_id: str,
        action: str,
        choices: Optional[dict[Any, bool]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> tuple[dict[ConsentType, bool], str]:
        """
        Apply a banner action and persist the result.

        Records one consent per category and the cookie copy in a single
        transaction. On failure the banner returns to its visible state and
        the error is re-raised.
        """
        final = banner.apply(action, choices)
        cookie_value = encode_consent_string(final)
        now = self.clock()
        try:
            async with self._transaction("submit_cookie_consent") as db:
                consents = self._consents(db)
                for request in build_consent_requests(user_id, final, ip_address, user_agent, cookie_value):
                    await consents.record_consent(request, now=now)
                await self._store_cookie_consent(db, user_id, final)
        except BoligDepositError:
            banner.fail()
            raise
        banner.close()
        logger.info("cookie consent: %s recorded for user %s", action, user_id)
        return final, cookie_value

    # ------------------------------------------------------------------
    # Breaches and audit
    # ------------------------------------------------------------------

    async def record_data_breach(self, breach: BreachCreate) -> DataBreach:
        async with self._transaction("record_data_breach") as db:
            return await BreachRegister(db, AuditTrail(db)).record_data_breach(breach, now=self.clock())

    async def check_audit_integrity(self) -> AuditIntegrityReport:
        async with self._transaction("check_audit_integrity") as db:
            total, failed = await AuditTrail(db).integrity_check()
        if failed:
            logger.error("audit: %d of %d entries failed verification", failed, total)
        return AuditIntegrityReport(total_entries=total, failed_entries=failed, checked_at=self.clock())


# ----------------------------------------------------------------------
# Convenience helpers
# ----------------------------------------------------------------------


async def record_user_consent(
    service: GDPRCompliance,
    user_id: str,
    consent_type: ConsentType,
    granted: bool,
    lawful_basis: LawfulBasis,
    purposes: list[ProcessingPurpose],
) -> ConsentRecord:
    return await service.record_consent(
        ConsentCreate(
            user_id=user_id,
            consent_type=consent_type,
            granted=granted,
            lawful_basis=lawful_basis,
            purposes=purposes,
        )
    )


async def check_user_consent(service: GDPRCompliance, user_id: str, consent_type: ConsentType) -> bool:
    return await service.has_valid_consent(user_id, consent_type)


async def log_data_processing(
    service: GDPRCompliance,
    user_id: str,
    data_category: DataCategory,
    purpose: ProcessingPurpose,
    lawful_basis: LawfulBasis,
) -> DataProcessingRecord:
    return await service.record_data_processing(
        ProcessingCreate(
            user_id=user_id,
            data_category=data_category,
            purpose=purpose,
            lawful_basis=lawful_basis,
        )
    )


async def handle_data_subject_request(
    service: GDPRCompliance, user_id: str, request_type: RequestType, details: str
) -> str:
    return await service.submit_data_subject_request(
        SubjectRequestCreate(user_id=user_id, type=request_type, request_details=details)
    )
