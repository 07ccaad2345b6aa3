import logging
from typing import Any, Optional

import httpx

from .errors import ProtocolError, TransportError
from .settings import STORY_API_BASE_URL

logger = logging.getLogger(__name__)

UNKNOWN_ERROR = "An unknown API error occurred"


class RemoteClient:
    """JSON request/response helper for the /api/* endpoints.

    Every non-success status becomes a ``TransportError`` carrying the
    endpoint's ``error`` message when it sent one. Retrying is left to callers.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: float = 120,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self._client = httpx.AsyncClient(
            base_url=base_url or STORY_API_BASE_URL,
            timeout=timeout,
            transport=transport,
        )

    async def call(self, endpoint: str, method: str = "GET", body: Any = None,
                   params: Optional[dict] = None) -> Any:
        try:
            response = await self._client.request(method, endpoint, json=body, params=params)
        except httpx.HTTPError as e:
            logger.error(f"{method} {endpoint} failed before a response arrived: {e}")
            raise TransportError(f"Request to {endpoint} failed: {e}") from e

        if not response.is_success:
            try:
                data = response.json()
            except ValueError:
                data = {"error": UNKNOWN_ERROR}
            message = data.get("error") if isinstance(data, dict) else None
            logger.error(f"{method} {endpoint} returned {response.status_code}: {message}")
            raise TransportError(
                message or f"Request to {endpoint} failed with status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProtocolError(f"Response from {endpoint} was not valid JSON",
                                status_code=response.status_code) from e

    async def aclose(self):
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()
