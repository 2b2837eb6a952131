"""
Tests for the admin routes
"""

import pytest

from boligdeposit.constants.gdpr import RequestType
from boligdeposit.services.gdpr_service import handle_data_subject_request


class TestAdminAccess:
    @pytest.mark.asyncio
    async def test_regular_user_is_forbidden(self, client, auth_headers):
        response = await client.get("/api/v1/admin/requests/overdue", headers=auth_headers)

        assert response.status_code == 403
        assert response.json()["error"]["details"]["required_role"] == "admin"

    @pytest.mark.asyncio
    async def test_anonymous_is_unauthorized(self, client):
        response = await client.get("/api/v1/admin/audit/integrity")
        assert response.status_code == 401


class TestRequestAdministration:
    @pytest.mark.asyncio
    async def test_complete_request(self, client, admin_auth_headers, gdpr):
        request_id = await handle_data_subject_request(gdpr, "u1", RequestType.ACCESS, "")

        response = await client.patch(
            f"/api/v1/admin/requests/{request_id}",
            json={"status": "completed", "response_data": "Export sent by email"},
            headers=admin_auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        assert response.json()["completed_date"] is not None

    @pytest.mark.asyncio
    async def test_invalid_transition(self, client, admin_auth_headers, gdpr):
        request_id = await handle_data_subject_request(gdpr, "u1", RequestType.ACCESS, "")
        await client.patch(
            f"/api/v1/admin/requests/{request_id}", json={"status": "completed"}, headers=admin_auth_headers
        )

        response = await client.patch(
            f"/api/v1/admin/requests/{request_id}", json={"status": "in_progress"}, headers=admin_auth_headers
        )

        assert response.status_code == 400
        assert response.json()["error"]["error_code"] == "INVALID_STATUS_TRANSITION"

    @pytest.mark.asyncio
    async def test_unknown_request(self, client, admin_auth_headers):
        response = await client.patch(
            "/api/v1/admin/requests/missing", json={"status": "in_progress"}, headers=admin_auth_headers
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_overdue_listing(self, client, admin_auth_headers, gdpr, clock):
        request_id = await handle_data_subject_request(gdpr, "u1", RequestType.ERASURE, "")
        clock.advance(days=45)

        response = await client.get("/api/v1/admin/requests/overdue", headers=admin_auth_headers)

        assert [r["id"] for r in response.json()] == [request_id]


class TestBreachRegister:
    @pytest.mark.asyncio
    async def test_high_risk_breach_notifies_subjects(self, client, admin_auth_headers, caplog):
        response = await client.post(
            "/api/v1/admin/breaches",
            json={
                "description": "Lost laptop with unencrypted tenant list",
                "risk_level": "high",
                "affected_user_ids": ["u1", "u2"],
                "data_categories": ["personal_basic", "financial"],
            },
            headers=admin_auth_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "subjects_notified"
        assert body["notified_at"] is not None
        assert "Data breach notification required" in caplog.text

    @pytest.mark.asyncio
    async def test_low_risk_breach_is_only_reported(self, client, admin_auth_headers):
        response = await client.post(
            "/api/v1/admin/breaches",
            json={"description": "Misdirected email, recalled", "risk_level": "low"},
            headers=admin_auth_headers,
        )

        assert response.json()["status"] == "reported"
        assert response.json()["notified_at"] is None


class TestMaintenanceRoutes:
    @pytest.mark.asyncio
    async def test_resume_erasures(self, client, admin_auth_headers):
        response = await client.post("/api/v1/admin/erasures/resume", headers=admin_auth_headers)

        assert response.status_code == 200
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_audit_integrity_report(self, client, admin_auth_headers, auth_headers):
        await client.post(
            "/api/v1/privacy/consents", json={"consent_type": "analytics", "granted": True}, headers=auth_headers
        )

        response = await client.get("/api/v1/admin/audit/integrity", headers=admin_auth_headers)

        assert response.status_code == 200
        assert response.json()["total_entries"] == 1
        assert response.json()["failed_entries"] == 0
