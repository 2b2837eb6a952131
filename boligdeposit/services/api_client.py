"""
Client for the BoligDeposit REST API (auth, escrow, contracts).

Every request carries the bearer token from ``token_provider`` (or an
explicit per-call token). A 401 means the session is gone; it is raised as
``AuthenticationRequiredError`` so the HTTP layer can send the user to the
login page.
"""

import logging
from typing import Any, Callable, Optional

import httpx

from boligdeposit.exceptions import AuthenticationRequiredError, ServiceError

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"


class ApiClient:
    def __init__(
        self,
        base_url: str,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self, token: Optional[str]) -> dict[str, str]:
        token = token or (self.token_provider() if self.token_provider else None)
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    async def request(self, method: str, path: str, token: Optional[str] = None, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, headers=self._headers(token), **kwargs)
        except httpx.TimeoutException as e:
            logger.error("api: %s %s timed out", method, path)
            raise ServiceError("Upstream API timed out", service="api", status_code=504) from e
        except httpx.RequestError as e:
            logger.error("api: %s %s failed: %s", method, path, e)
            raise ServiceError(f"Upstream API request failed: {e}", service="api") from e

        if response.status_code == 401:
            logger.info("api: %s %s returned 401, login required", method, path)
            raise AuthenticationRequiredError(redirect_to=LOGIN_PATH)
        if response.status_code >= 400:
            logger.warning("api: %s %s returned %d", method, path, response.status_code)
            raise ServiceError(f"Upstream API returned {response.status_code}", service="api")

        if not response.content:
            return None
        return response.json()

    async def get(self, path: str, **kwargs) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs) -> Any:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs) -> Any:
        return await self.request("PUT", path, **kwargs)

    async def delete(self, path: str, **kwargs) -> Any:
        return await self.request("DELETE", path, **kwargs)

    async def get_user_contracts(self, token: Optional[str] = None) -> list[dict[str, Any]]:
        """Escrow contracts where the token's user is buyer or seller."""
        contracts = await self.get("/escrow", token=token)
        return list(contracts or [])
