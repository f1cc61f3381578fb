"""Transcript Recorder: best-effort saves of each utterance to the backend log."""

import asyncio
from typing import Literal

from app.logging_config import EventLogger
from app.schemas.easysystem import SaveMessageRequest, to_wire
from app.schemas.turn import ConversationTurn
from app.services.backend_client import BackendClient
from app.services.circuit_breaker import SAVE_SERVICE
from app.services.profiles import BusinessUnitProfile
from app.services.result import ErrorKind, Result


class TranscriptRecorder:
    def __init__(self, backend: BackendClient, url: str, events: EventLogger):
        self.backend = backend
        self.url = url
        self.events = events
        self._pending: set[asyncio.Task] = set()

    async def save(
        self, turn: ConversationTurn, profile: BusinessUnitProfile, role: Literal["user", "assistant"]
    ) -> Result[None]:
        request = SaveMessageRequest(
            text=turn.message or "",
            external_conversation_id=turn.conversation_id,
            business_unit=profile.resolve_business_unit(turn.business_unit),
            role=role,
        )
        result = await self.backend.post(
            SAVE_SERVICE,
            self.url,
            to_wire(request),
            turn,
            profile,
            include_session_headers=False,
            extra_headers={"X-Correlation-Id": turn.correlation_id or ""},
        )
        if result.ok:
            self.events.info(
                "MESSAGE_SAVED_TO_EASYSYSTEM",
                {"conversation_id": turn.conversation_id, "role": role},
                turn.correlation_id,
            )
            return Result.success(None)

        self.events.warn(
            "MESSAGE_SAVE_FAILED",
            {"conversation_id": turn.conversation_id, "role": role, "error": result.error},
            turn.correlation_id,
        )
        return Result.failure(result.error or "save failed", ErrorKind.SAVE_FAILURE)

    def record(
        self, turn: ConversationTurn, profile: BusinessUnitProfile, role: Literal["user", "assistant"]
    ) -> asyncio.Task:
        """Schedule a save without waiting for it. The turn is copied so later edits do not leak in."""
        snapshot = turn.model_copy(deep=True)
        task = asyncio.create_task(self.save(snapshot, profile, role))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for scheduled saves, used on shutdown and in tests."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
