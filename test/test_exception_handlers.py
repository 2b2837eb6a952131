"""
Tests for the uniform error body
"""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel

from boligdeposit.exception_handlers import register_exception_handlers
from boligdeposit.exceptions import AuthenticationRequiredError, ErasureBlockedError, StorageError


class Payload(BaseModel):
    amount: int


@pytest.fixture
async def error_client():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/blocked")
    async def blocked():
        raise ErasureBlockedError("u1")

    @app.get("/storage")
    async def storage():
        raise StorageError(operation="record_consent")

    @app.get("/upstream")
    async def upstream():
        raise AuthenticationRequiredError()

    @app.post("/payload")
    async def payload(body: Payload):
        return body

    @app.get("/crash")
    async def crash():
        raise RuntimeError("database password is hunter2")

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="https://testserver") as client:
        yield client


class TestServiceErrors:
    @pytest.mark.asyncio
    async def test_erasure_blocked(self, error_client):
        response = await error_client.get("/blocked")

        assert response.status_code == 409
        assert response.json() == {
            "error": {
                "status_code": 409,
                "error_code": "ERASURE_BLOCKED",
                "message": "Data cannot be erased while an active lease contract exists",
                "details": {"user_id": "u1"},
                "path": "/blocked",
            }
        }

    @pytest.mark.asyncio
    async def test_storage_error(self, error_client):
        response = await error_client.get("/storage")

        assert response.status_code == 500
        assert response.json()["error"]["error_code"] == "STORAGE_ERROR"
        assert response.json()["error"]["details"] == {"operation": "record_consent"}

    @pytest.mark.asyncio
    async def test_login_required_carries_redirect(self, error_client):
        response = await error_client.get("/upstream")

        assert response.status_code == 401
        assert response.json()["error"]["error_code"] == "AUTH_LOGIN_REQUIRED"
        assert response.json()["error"]["details"]["redirect_to"] == "/login"


class TestFrameworkErrors:
    @pytest.mark.asyncio
    async def test_unknown_path(self, error_client):
        response = await error_client.get("/nowhere")

        assert response.status_code == 404
        assert response.json()["error"]["error_code"] == "RESOURCE_NOT_FOUND"
        assert "details" not in response.json()["error"]

    @pytest.mark.asyncio
    async def test_wrong_method(self, error_client):
        response = await error_client.delete("/blocked")

        assert response.status_code == 405
        assert response.json()["error"]["error_code"] == "METHOD_NOT_ALLOWED"

    @pytest.mark.asyncio
    async def test_validation_errors_listed(self, error_client):
        response = await error_client.post("/payload", json={"amount": "lots"})

        assert response.status_code == 422
        errors = response.json()["error"]["details"]["validation_errors"]
        assert errors[0]["field"] == "amount"

    @pytest.mark.asyncio
    async def test_unhandled_error_hides_internals(self, error_client):
        response = await error_client.get("/crash")

        assert response.status_code == 500
        assert response.json()["error"]["error_code"] == "INTERNAL_ERROR"
        assert "hunter2" not in response.text
