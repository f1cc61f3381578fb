"""Backend Call: breaker-gated POSTs to the EasySystem endpoints."""

from typing import Any, Callable, Optional

import httpx
from pydantic import ValidationError

from app.logging_config import EventLogger
from app.schemas.easysystem import BackendResponse
from app.schemas.turn import ConversationTurn
from app.services.circuit_breaker import CircuitBreaker
from app.services.context_service import build_headers
from app.services.http_client import DirectHttpClient, HttpResponse
from app.services.profiles import BusinessUnitProfile
from app.services.result import ErrorKind, Result

DEFAULT_TIMEOUT_SECONDS = 30.0


class BackendCallError(Exception):
    def __init__(self, kind: ErrorKind, message: str, status_code: Optional[int] = None):
        self.kind = kind
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class BackendClient:
    def __init__(
        self,
        http: DirectHttpClient,
        breaker: CircuitBreaker,
        events: EventLogger,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.http = http
        self.breaker = breaker
        self.events = events
        self.timeout = timeout

    async def post(
        self,
        service: str,
        url: str,
        body: dict,
        turn: ConversationTurn,
        profile: BusinessUnitProfile,
        include_session_headers: bool = True,
        extra_headers: Optional[dict] = None,
    ) -> Result[HttpResponse]:
        """POST ``body``. Any 2xx answer is a success whatever its body. Never raises."""
        try:
            data = await self._post(service, url, body, turn, profile, include_session_headers, extra_headers)
        except BackendCallError as exc:
            return Result.failure(exc.message, exc.kind)
        return Result.success(data)

    async def call(
        self, service: str, url: str, body: dict, turn: ConversationTurn, profile: BusinessUnitProfile
    ) -> Result[BackendResponse]:
        """POST and parse a BackendResponse. A malformed answer counts as a remote failure."""
        try:
            data = await self._post(service, url, body, turn, profile, parse=BackendResponse.model_validate)
        except BackendCallError as exc:
            return Result.failure(exc.message, exc.kind)
        return Result.success(data)

    async def _post(
        self,
        service: str,
        url: str,
        body: dict,
        turn: ConversationTurn,
        profile: BusinessUnitProfile,
        include_session_headers: bool = True,
        extra_headers: Optional[dict] = None,
        parse: Optional[Callable[[Any], Any]] = None,
    ) -> Any:
        correlation_id = turn.correlation_id
        if not await self.breaker.can_execute(service):
            self.events.warn(
                "CIRCUIT_BREAKER_OPEN",
                {"service": service, "conversation_id": turn.conversation_id},
                correlation_id,
            )
            raise BackendCallError(ErrorKind.CIRCUIT_OPEN, f"Circuit open for {service}")

        headers = build_headers(turn, profile, include_session_headers, self.events)
        if extra_headers:
            headers.update(extra_headers)

        self.events.log_api_call_start(url, body, correlation_id)
        try:
            response = await self.http.post(url, body, headers=headers, timeout=self.timeout)
            data = parse(response.json()) if parse is not None else response
        except (httpx.HTTPError, ValidationError, ValueError) as exc:
            await self.breaker.record_failure(service, {"conversation_id": turn.conversation_id}, exc)
            self.events.log_api_call_error(url, exc, correlation_id)
            status_code = exc.response.status_code if isinstance(exc, httpx.HTTPStatusError) else None
            raise BackendCallError(ErrorKind.REMOTE_CALL_FAILURE, str(exc), status_code) from exc

        await self.breaker.record_success(service, {"conversation_id": turn.conversation_id})
        self.events.log_api_call_complete(url, response.status_code, correlation_id)
        return data
