"""
Tests for the audit trail hashes and integrity check
"""

import pytest
from sqlalchemy import select

from boligdeposit.constants.gdpr import AuditAction
from boligdeposit.models.audit_log import AuditLogEntry
from boligdeposit.services.audit_service import AuditTrail
from boligdeposit.utils.hashing import audit_entry_hash, canonical_json, sha256_hex


class TestAuditHash:
    def test_hash_covers_action_user_and_details(self):
        details = canonical_json({"granted": True, "consent_type": "analytics"})
        expected = sha256_hex("CONSENT_RECORDED" + "u1" + details)

        assert audit_entry_hash("CONSENT_RECORDED", "u1", details) == expected

    def test_canonical_json_is_key_order_independent(self):
        assert canonical_json({"b": 1, "a": 2}) == canonical_json({"a": 2, "b": 1})

    @pytest.mark.asyncio
    async def test_appended_entry_verifies(self, test_db):
        trail = AuditTrail(test_db)
        entry = await trail.append(AuditAction.DATA_PROCESSED, "u1", {"purpose": "service_delivery"})
        await test_db.commit()

        assert entry.action == "DATA_PROCESSED"
        assert AuditTrail.verify_entry(entry) is True

    @pytest.mark.asyncio
    async def test_tampered_entry_fails(self, test_db):
        trail = AuditTrail(test_db)
        entry = await trail.append(AuditAction.CONSENT_RECORDED, "u1", {"granted": False})
        await test_db.commit()

        entry.details = canonical_json({"granted": True})
        assert AuditTrail.verify_entry(entry) is False

    @pytest.mark.asyncio
    async def test_append_does_not_commit(self, test_db, session_factory):
        await AuditTrail(test_db).append(AuditAction.DATA_ERASED, "u1", {})
        await test_db.rollback()

        async with session_factory() as db:
            assert (await db.execute(select(AuditLogEntry))).scalars().all() == []


class TestIntegrityCheck:
    @pytest.mark.asyncio
    async def test_reports_counts_only(self, test_db):
        trail = AuditTrail(test_db)
        for i in range(3):
            await trail.append(AuditAction.DATA_PROCESSED, f"u{i}", {"n": i})
        await test_db.commit()

        total, failed = await trail.integrity_check(batch_size=2)
        assert (total, failed) == (3, 0)

    @pytest.mark.asyncio
    async def test_detects_modified_entry(self, gdpr, test_db):
        trail = AuditTrail(test_db)
        entry = await trail.append(AuditAction.DATA_PROCESSED, "u1", {"n": 1})
        await trail.append(AuditAction.DATA_PROCESSED, "u2", {"n": 2})
        await test_db.commit()

        entry.user_id = "someone-else"
        await test_db.commit()

        report = await gdpr.check_audit_integrity()
        assert report.total_entries == 2
        assert report.failed_entries == 1
