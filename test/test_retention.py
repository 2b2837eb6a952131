"""
Tests for the scheduled GDPR maintenance jobs
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from boligdeposit.services.erasure_service import ErasureOutcome, ErasureResult
from boligdeposit.utils.retention import anonymize_inactive_users, install_maintenance_jobs, resume_pending_erasures


class TestInstallMaintenanceJobs:
    def test_registers_both_jobs(self):
        scheduler = MagicMock()
        service = MagicMock()

        install_maintenance_jobs(scheduler, service, inactive_days=1095)

        assert scheduler.add_job.call_count == 2
        ids = [call.kwargs["id"] for call in scheduler.add_job.call_args_list]
        assert ids == ["gdpr_anonymization", "gdpr_erasure_resume"]
        for call in scheduler.add_job.call_args_list:
            assert call.kwargs["max_instances"] == 1
            assert call.kwargs["replace_existing"] is True

    def test_anonymization_job_args(self):
        scheduler = MagicMock()
        service = MagicMock()

        install_maintenance_jobs(scheduler, service, inactive_days=30, interval_hours=6)

        first = scheduler.add_job.call_args_list[0]
        assert first.args[0] is anonymize_inactive_users
        assert first.kwargs["args"] == [service, 30]


class TestAnonymizeInactiveUsers:
    @pytest.mark.asyncio
    async def test_returns_count(self):
        service = MagicMock()
        service.anonymize_inactive_users = AsyncMock(return_value=4)

        assert await anonymize_inactive_users(service, 1095) == 4
        service.anonymize_inactive_users.assert_awaited_once_with(1095)

    @pytest.mark.asyncio
    async def test_failure_returns_zero(self, caplog):
        service = MagicMock()
        service.anonymize_inactive_users = AsyncMock(side_effect=RuntimeError("db down"))

        assert await anonymize_inactive_users(service, 1095) == 0
        assert "anonymization failed" in caplog.text


class TestResumePendingErasures:
    @pytest.mark.asyncio
    async def test_counts_completed_jobs(self):
        service = MagicMock()
        service.resume_erasures = AsyncMock(
            return_value=[
                ErasureResult(ErasureOutcome.ERASED, "u1", job_id=1),
                ErasureResult(ErasureOutcome.FAILED, "u2", job_id=2, error="boom"),
            ]
        )

        assert await resume_pending_erasures(service) == 1

    @pytest.mark.asyncio
    async def test_failure_returns_zero(self):
        service = MagicMock()
        service.resume_erasures = AsyncMock(side_effect=RuntimeError("db down"))

        assert await resume_pending_erasures(service) == 0

    @pytest.mark.asyncio
    async def test_against_real_service(self, gdpr):
        assert await resume_pending_erasures(gdpr) == 0
