"""
HTTP client for the veterinary clinic REST API.

One client per user session: the bearer token is read from the session on
every request, and any 401 clears the session before SessionExpiredError is
raised to the caller.
"""

import logging
from typing import Any, Awaitable, Callable, Optional

import httpx

from utils.exceptions import ApiError, NetworkError, SessionExpiredError

logger = logging.getLogger(__name__)

_API_TIMEOUT = 30.0  # seconds

TokenProvider = Callable[[], Optional[str]]
UnauthorizedHandler = Callable[[], Awaitable[None]]


class ClinicApiClient:
    """Thin async wrapper around httpx bound to the clinic API base URL."""

    def __init__(
        self,
        base_url: str,
        token_provider: Optional[TokenProvider] = None,
        on_unauthorized: Optional[UnauthorizedHandler] = None,
        timeout: float = _API_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._token_provider = token_provider
        self._on_unauthorized = on_unauthorized
        self.client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            event_hooks={
                "request": [self._attach_token],
                "response": [self._handle_unauthorized],
            },
            transport=transport,
        )

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> "ClinicApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ========== Hooks ==========

    async def _attach_token(self, request: httpx.Request) -> None:
        token = self._token_provider() if self._token_provider else None
        if token:
            request.headers["Authorization"] = f"Bearer {token}"

    async def _handle_unauthorized(self, response: httpx.Response) -> None:
        if response.status_code != 401:
            return

        logger.warning(
            f"401 from {response.request.method} {response.request.url.path}, clearing session"
        )
        if self._on_unauthorized:
            await self._on_unauthorized()
        raise SessionExpiredError(
            "Tu sesión ha expirado. Inicia sesión nuevamente."
        )

    # ========== Requests ==========

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json: Any = None,
    ) -> Any:
        """
        Issue one HTTP call and return the decoded body.

        Raises:
            SessionExpiredError: On 401 (session already cleared)
            ApiError: On any other non-2xx status
            NetworkError: If no response was received
        """
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        try:
            response = await self.client.request(method, path, params=params, json=json)
        except httpx.RequestError as e:
            logger.error(f"Request error {method} {path}: {e}")
            raise NetworkError(
                f"No se pudo conectar con el servidor: {e}"
            ) from e

        body = _decode(response)

        if response.is_error:
            logger.info(f"{method} {path} failed with HTTP {response.status_code}")
            raise ApiError(
                f"Error {response.status_code} del servidor",
                status_code=response.status_code,
                payload=body,
            )

        return body

    async def get(self, path: str, params: Optional[dict] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Any = None, params: Optional[dict] = None) -> Any:
        return await self.request("POST", path, json=json, params=params)

    async def put(self, path: str, json: Any = None, params: Optional[dict] = None) -> Any:
        return await self.request("PUT", path, json=json, params=params)

    async def patch(self, path: str, json: Any = None) -> Any:
        return await self.request("PATCH", path, json=json)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
