"""
Data exports for the right of access (Article 15) and the right to data
portability (Article 20). Both are read-only aggregations; each call leaves
one audit entry.
"""

import logging
from datetime import datetime
from typing import Any

from boligdeposit.constants.gdpr import (
    COMMUNICATION_KEY,
    CONTRACTS_KEY,
    DOCUMENTS_KEY,
    FINANCIAL_DATA_KEY,
    PREFERENCES_KEY,
    USER_DATA_KEY,
    AuditAction,
)
from boligdeposit.schemas.gdpr import ConsentOut, ProcessingOut
from boligdeposit.services.audit_service import AuditTrail
from boligdeposit.services.consent_service import ConsentStore
from boligdeposit.services.processing_service import ProcessingLedger
from boligdeposit.services.secure_storage import SecureStorage
from boligdeposit.utils.clock import utcnow

logger = logging.getLogger(__name__)

EXPORT_FORMAT_VERSION = "1.0"


class DataExporter:
    def __init__(
        self,
        storage: SecureStorage,
        consents: ConsentStore,
        ledger: ProcessingLedger,
        audit: AuditTrail,
    ):
        self.storage = storage
        self.consents = consents
        self.ledger = ledger
        self.audit = audit

    def _export_info(self, user_id: str, now: datetime) -> dict[str, Any]:
        return {"user_id": user_id, "generated_at": now.isoformat(), "format_version": EXPORT_FORMAT_VERSION}

    async def generate_data_export(self, user_id: str, now: datetime | None = None) -> dict[str, Any]:
        now = now or utcnow()
        consents = await self.consents.get_consents(user_id)
        records = await self.ledger.get_processing_records(user_id)

        export = {
            "export_info": self._export_info(user_id, now),
            "personal_data": await self.storage.get_item(USER_DATA_KEY.format(user_id=user_id)),
            "processing_records": [ProcessingOut.model_validate(r).model_dump(mode="json") for r in records],
            "consents": [ConsentOut.model_validate(c).model_dump(mode="json") for c in consents],
            "communication_history": await self.storage.get_item(COMMUNICATION_KEY.format(user_id=user_id)),
            "financial_data": await self.storage.get_item(FINANCIAL_DATA_KEY.format(user_id=user_id)),
        }

        await self.audit.append(AuditAction.DATA_ACCESS_REQUEST, user_id, {"export_generated": True}, now=now)
        logger.info("Data export generated for user %s", user_id)
        return export

    async def generate_portability_export(self, user_id: str, now: datetime | None = None) -> dict[str, Any]:
        now = now or utcnow()
        export = {
            "export_info": self._export_info(user_id, now),
            "profile": await self.storage.get_item(USER_DATA_KEY.format(user_id=user_id)),
            "preferences": await self.storage.get_item(PREFERENCES_KEY.format(user_id=user_id)),
            "documents": await self.storage.get_item(DOCUMENTS_KEY.format(user_id=user_id)),
            "contracts": await self.storage.get_item(CONTRACTS_KEY.format(user_id=user_id)),
        }

        await self.audit.append(AuditAction.DATA_PORTABILITY_REQUEST, user_id, {"export_generated": True}, now=now)
        logger.info("Portability export generated for user %s", user_id)
        return export
