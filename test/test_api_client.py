"""
Tests for the upstream REST API client
"""

import httpx
import pytest

from boligdeposit.exceptions import AuthenticationRequiredError, ServiceError
from boligdeposit.services.api_client import ApiClient
from boligdeposit.services.erasure_service import ErasureOutcome
from boligdeposit.services.gdpr_service import GDPRCompliance


def make_client(handler, token="tenant-token") -> ApiClient:
    return ApiClient(
        "http://api.boligdeposit.test/api",
        token_provider=lambda: token,
        transport=httpx.MockTransport(handler),
    )


class TestApiClient:
    @pytest.mark.asyncio
    async def test_bearer_token_is_sent(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            seen["url"] = str(request.url)
            return httpx.Response(200, json=[{"id": "c1", "status": "ACTIVE"}])

        async with make_client(handler) as client:
            contracts = await client.get_user_contracts()

        assert seen["auth"] == "Bearer tenant-token"
        assert seen["url"] == "http://api.boligdeposit.test/api/escrow"
        assert contracts == [{"id": "c1", "status": "ACTIVE"}]

    @pytest.mark.asyncio
    async def test_explicit_token_overrides_provider(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json=[])

        async with make_client(handler) as client:
            await client.get_user_contracts(token="caller-token")

        assert seen["auth"] == "Bearer caller-token"

    @pytest.mark.asyncio
    async def test_no_token_no_header(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(204)

        async with make_client(handler, token=None) as client:
            assert await client.delete("/session") is None

        assert seen["auth"] is None

    @pytest.mark.asyncio
    async def test_401_requires_login(self):
        async with make_client(lambda request: httpx.Response(401)) as client:
            with pytest.raises(AuthenticationRequiredError) as exc_info:
                await client.get("/escrow")

        assert exc_info.value.redirect_to == "/login"
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_server_error_raises_service_error(self):
        async with make_client(lambda request: httpx.Response(503)) as client:
            with pytest.raises(ServiceError) as exc_info:
                await client.post("/escrow", json={"amount": 10000})

        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_connection_error_raises_service_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(ServiceError):
                await client.get("/escrow")


class TestContractSync:
    @pytest.mark.asyncio
    async def test_sync_before_erasure_blocks_active_contract(self, test_settings, clock, session_factory):
        client = make_client(lambda request: httpx.Response(200, json=[{"id": "c9", "status": "ACTIVE"}]))
        settings = test_settings.model_copy(update={"contract_sync_enabled": True})
        service = GDPRCompliance(session_factory, settings, clock=clock, api_client=client)

        result = await service.erase_user_data("u1", token="caller-token")

        assert result.status == ErasureOutcome.BLOCKED
        assert await service.get_user_item("contracts_u1") == [{"id": "c9", "status": "ACTIVE"}]
        await client.aclose()
