import json
from dataclasses import dataclass
from typing import Any, Optional

import backoff
import httpx

from app.logging_config import get_logger

logger = get_logger("http_client")

DEFAULT_HEADERS = {"Content-Type": "application/json"}
RETRYABLE_ERRORS = (httpx.TransportError, httpx.HTTPStatusError)


@dataclass
class HttpResponse:
    status_code: int
    content: bytes = b""

    def json(self) -> Any:
        """Decode the body. Raises ValueError when it is not JSON."""
        return json.loads(self.content) if self.content else {}


def _is_permanent(exc: Exception) -> bool:
    """4xx answers will not improve on retry."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code < 500
    return False


class DirectHttpClient:
    """Plain httpx client: one attempt, raises on non-2xx or network error."""

    def __init__(self, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def _send(self, method: str, url: str, body: Optional[dict], headers: Optional[dict], timeout: Optional[float]):
        response = await self._client.request(
            method,
            url,
            json=body,
            headers=headers or DEFAULT_HEADERS,
            timeout=timeout or self.timeout,
        )
        response.raise_for_status()
        return HttpResponse(status_code=response.status_code, content=response.content)

    async def post(
        self, url: str, body: dict, headers: Optional[dict] = None, timeout: Optional[float] = None
    ) -> HttpResponse:
        return await self._send("POST", url, body, headers, timeout)

    async def get(self, url: str, headers: Optional[dict] = None, timeout: Optional[float] = None) -> HttpResponse:
        return await self._send("GET", url, None, headers, timeout)

    async def aclose(self) -> None:
        await self._client.aclose()


class ResilientHttpClient(DirectHttpClient):
    """httpx client with exponential backoff on network errors and 5xx answers."""

    def __init__(
        self,
        timeout: float = 30.0,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(timeout=timeout, transport=transport)
        self.max_retries = max(0, max_retries)
        self._send_with_retry = backoff.on_exception(
            backoff.expo,
            RETRYABLE_ERRORS,
            max_tries=self.max_retries + 1,
            giveup=_is_permanent,
            factor=base_delay,
            max_value=max_delay,
            logger=logger,
        )(super()._send)

    async def _send(self, method: str, url: str, body: Optional[dict], headers: Optional[dict], timeout: Optional[float]):
        return await self._send_with_retry(method, url, body, headers, timeout)
