import json
from typing import Callable, Optional

import httpx
import pytest

from app.logging_config import EventLogger
from app.schemas.turn import ConversationTurn, Owner, TurnSession
from app.services.backend_client import BackendClient
from app.services.circuit_breaker import InMemoryCircuitBreaker
from app.services.context_service import ContextSynchronizer
from app.services.dialog_sdk import ResponseDialogSDK
from app.services.health_service import NoopHealthMonitor
from app.services.http_client import DirectHttpClient
from app.services.profiles import BusinessUnitProfile, get_profile
from app.services.session_manager import SessionManager
from app.services.transcript_service import TranscriptRecorder
from app.services.turn_router import TurnRouter

SEND_URL = "http://easysystem.test/send"
SAVE_URL = "http://easysystem.test/save"
CONTEXT_URL = "http://easysystem.test/context"


class RecordingSDK(ResponseDialogSDK):
    """Response SDK that remembers every delivery."""

    def __init__(self):
        self.calls: list[tuple[str, Optional[str]]] = []

    async def send_bot_message(self, turn):
        self.calls.append(("bot", turn.message))
        return await super().send_bot_message(turn)

    async def send_user_message(self, turn):
        self.calls.append(("user", turn.message))
        return await super().send_user_message(turn)

    async def send_webhook_response(self, turn):
        self.calls.append(("webhook", turn.message))
        return await super().send_webhook_response(turn)

    def kinds(self) -> list[str]:
        return [kind for kind, _ in self.calls]


class FakeEasySystem:
    """httpx.MockTransport handler standing in for the three backend endpoints."""

    def __init__(self, send_reply=None, send_status: int = 200, send_error: Optional[Exception] = None):
        self.send_reply = send_reply if send_reply is not None else {"text": "ok"}
        self.send_status = send_status
        self.send_error = send_error
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if str(request.url) == SEND_URL:
            if self.send_error is not None:
                raise self.send_error
            if isinstance(self.send_reply, (dict, list)):
                return httpx.Response(self.send_status, json=self.send_reply)
            return httpx.Response(self.send_status, content=self.send_reply)
        return httpx.Response(200, json={})

    def to(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url) == url]

    def bodies(self, url: str) -> list[dict]:
        return [json.loads(r.content) for r in self.to(url)]


def make_turn(
    message: Optional[str] = "hello",
    owner: Owner = Owner.PLATFORM,
    business_unit: Optional[str] = "C",
    conversation_id: str = "conv-1",
    context: Optional[dict] = None,
    **session_fields,
) -> ConversationTurn:
    session = TurnSession(
        ownership=owner,
        business_unit=business_unit,
        conversation_id=conversation_id,
        **session_fields,
    )
    return ConversationTurn(message=message, session=session, context=context or {})


@pytest.fixture
def turn_factory() -> Callable[..., ConversationTurn]:
    return make_turn


@pytest.fixture
def make_router():
    """Build a TurnRouter for a profile against a FakeEasySystem."""

    def _make(profile, backend: Optional[FakeEasySystem] = None, breaker=None):
        if isinstance(profile, str):
            profile = get_profile(profile)
        fake = backend or FakeEasySystem()
        breaker = breaker or InMemoryCircuitBreaker(failure_threshold=5, open_seconds=30)
        events = EventLogger("test", bot=profile.bot_name)
        http = DirectHttpClient(timeout=5, transport=httpx.MockTransport(fake))
        client = BackendClient(http, breaker, events)
        sessions = SessionManager()
        sdk = RecordingSDK()
        router = TurnRouter(
            profile=profile,
            backend=client,
            transcripts=TranscriptRecorder(client, SAVE_URL, events),
            context_sync=ContextSynchronizer(client, CONTEXT_URL, events),
            sdk=sdk,
            events=events,
            health=NoopHealthMonitor(profile.instance_id, breaker, sessions),
            sessions=sessions,
            send_url=SEND_URL,
        )
        return router, fake, sdk

    return _make


@pytest.fixture
def sba_profile() -> BusinessUnitProfile:
    return get_profile("EasySystemSBA")
