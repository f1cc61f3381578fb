"""Turn Router: decides per platform event who owns the turn and what gets relayed."""

from typing import Optional

from app.logging_config import EventLogger
from app.schemas.easysystem import BackendResponse, SendMessageRequest, to_wire
from app.schemas.turn import ConversationTurn, Owner
from app.services.backend_client import BackendClient
from app.services.circuit_breaker import SEND_SERVICE
from app.services.context_service import ContextSynchronizer
from app.services.dialog_sdk import DialogSDK
from app.services.escalation_service import HOLD_MESSAGE, mark_agent_transfer, trigger_agent_transfer
from app.services.health_service import HealthMonitor
from app.services.intent_service import IntentSpec, OutcomeMode, resolve_intent
from app.services.profiles import BusinessUnitProfile
from app.services.result import ErrorKind, Result
from app.services.session_manager import SessionManager
from app.services.state_machine import ResponseOutcome, classify_response, resolve_owner
from app.services.transcript_service import TranscriptRecorder

WEBHOOK_ACK_STATUS = "success"
DEFAULT_RENDER = "text/plain"


class TurnRouter:
    """One router per bot profile. Every entry point returns ``Result[ConversationTurn]`` and never raises."""

    def __init__(
        self,
        profile: BusinessUnitProfile,
        backend: BackendClient,
        transcripts: TranscriptRecorder,
        context_sync: ContextSynchronizer,
        sdk: DialogSDK,
        events: EventLogger,
        health: HealthMonitor,
        sessions: SessionManager,
        send_url: str,
    ):
        self.profile = profile
        self.backend = backend
        self.transcripts = transcripts
        self.context_sync = context_sync
        self.sdk = sdk
        self.events = events
        self.health = health
        self.sessions = sessions
        self.send_url = send_url

    # Entry points

    async def on_user_message(self, turn: ConversationTurn) -> Result[ConversationTurn]:
        self._begin(turn)
        try:
            result = await self._handle_user_message(turn)
        except Exception as exc:
            result = await self._fail_turn(turn, "USER_MESSAGE_PROCESSING_ERROR", exc)
        return self._finish("user_message", result)

    async def on_bot_message(self, turn: ConversationTurn) -> Result[ConversationTurn]:
        self._begin(turn)
        try:
            result = await self._handle_bot_message(turn)
        except Exception as exc:
            result = await self._fail_turn(turn, "BOT_MESSAGE_PROCESSING_ERROR", exc)
        return self._finish("bot_message", result)

    async def on_webhook(self, turn: ConversationTurn, component_name: str) -> Result[ConversationTurn]:
        self._begin(turn)
        try:
            result = await self._handle_webhook(turn, component_name)
        except Exception as exc:
            result = await self._fail_turn(turn, "WEBHOOK_PROCESSING_ERROR", exc)
        return self._finish("webhook", result)

    async def on_event(self, turn: ConversationTurn) -> Result[ConversationTurn]:
        """Logs agent lifecycle events. Never changes or fails the turn."""
        self._begin(turn)
        try:
            self._log_event(turn)
        except Exception as exc:
            self.events.error(
                "EVENT_PROCESSING_ERROR",
                {"error": str(exc), "conversation_id": turn.conversation_id},
                turn.correlation_id,
            )
        return self._finish("event", Result.success(turn))

    async def on_malformed_payload(self, turn: ConversationTurn, exc: Exception) -> Result[ConversationTurn]:
        """Escalate a payload whose session could not be read."""
        self._begin(turn)
        return self._finish("malformed_payload", await self._fail_turn(turn, "MALFORMED_SESSION", exc))

    async def on_client_event(self, turn: ConversationTurn) -> Result[ConversationTurn]:
        return Result.success(turn)

    def get_health_status(self) -> dict:
        return self.health.get_health_status()

    async def cleanup(self) -> None:
        self.sessions.cleanup()
        await self.health.stop()
        await self.transcripts.drain()
        self.events.info("BOT_CLEANUP_COMPLETED", {"bot": self.profile.bot_name})

    # Paths

    def _guard(self, turn: ConversationTurn) -> Optional[str]:
        business_unit = turn.business_unit
        if not business_unit or not str(business_unit).strip():
            return "business unit missing"
        if not turn.has_message():
            return "message empty"
        return None

    async def _handle_user_message(self, turn: ConversationTurn) -> Result[ConversationTurn]:
        skip = self._guard(turn)
        if skip:
            return Result.skipped(await self.sdk.send_bot_message(turn), skip)

        self.transcripts.record(turn, self.profile, "user")

        if turn.session.ownership != Owner.BACKEND_SYSTEM:
            return Result.success(await self.sdk.send_bot_message(turn))

        request = SendMessageRequest(
            text=turn.message,
            conversation_id=turn.conversation_id,
            external_conversation_id=turn.conversation_id,
            business_unit=turn.business_unit,
        )
        result = await self.backend.call(SEND_SERVICE, self.send_url, to_wire(request), turn, self.profile)
        if not result.ok:
            await trigger_agent_transfer(turn, self.sdk, self.events, HOLD_MESSAGE, reason=result.error_code)
            return Result.failure(result.error, result.error_code, value=turn)
        return Result.success(await self._relay_reply(turn, result.value, keep_on_continue=True))

    async def _handle_bot_message(self, turn: ConversationTurn) -> Result[ConversationTurn]:
        skip = self._guard(turn)
        if skip:
            return Result.skipped(await self.sdk.send_user_message(turn), skip)

        # While the backend owns the conversation its own replies are already on record.
        if turn.session.ownership != Owner.BACKEND_SYSTEM:
            self.transcripts.record(turn, self.profile, "assistant")
        return Result.success(await self.sdk.send_user_message(turn))

    async def _handle_webhook(self, turn: ConversationTurn, component_name: str) -> Result[ConversationTurn]:
        business_unit = self.profile.resolve_business_unit(turn.business_unit)
        intent = resolve_intent(component_name, self.profile.webhook_components)
        if intent is None or not self.profile.accepts_webhooks_for(business_unit):
            return Result.success(await self._acknowledge(turn))

        if intent.sync_context:
            await self.context_sync.sync(turn, self.profile)

        request = SendMessageRequest(
            text=intent.template(turn),
            conversation_id=turn.conversation_id,
            external_conversation_id=turn.conversation_id,
            business_unit=business_unit,
        )
        result = await self.backend.call(SEND_SERVICE, self.send_url, to_wire(request), turn, self.profile)
        mode = OutcomeMode(self.profile.outcome_mode_for(intent.key, business_unit, intent.mode.value))
        reply_field = self.profile.reply_fields.get(intent.key)

        if mode == OutcomeMode.STASH:
            await self._stash(turn, intent, result, reply_field)
        elif result.ok:
            await self._relay_reply(
                turn, result.value, keep_on_continue=mode != OutcomeMode.HANDOVER, reply_field=reply_field
            )
        else:
            await trigger_agent_transfer(turn, self.sdk, self.events, HOLD_MESSAGE, reason=result.error_code)

        if result.ok:
            return Result.success(turn)
        return Result.failure(result.error, result.error_code, value=turn)

    # Outcome handlers

    async def _relay_reply(
        self,
        turn: ConversationTurn,
        response: BackendResponse,
        keep_on_continue: bool,
        reply_field: Optional[str] = None,
    ) -> ConversationTurn:
        if reply_field:
            self._store_reply(turn, response, reply_field)
        if classify_response(response) == ResponseOutcome.TRANSFER:
            return await trigger_agent_transfer(
                turn, self.sdk, self.events, response.text or None, reason="backend_transfer"
            )

        # Replies kept in their own field leave the message untouched.
        if not reply_field:
            turn.message = response.text
        turn.session.ownership = resolve_owner(turn.session.ownership, response, keep_on_continue)
        if response.end_conversation:
            turn.session.end_conversation = True
            turn.conversation_ended = True
        return await self.sdk.send_user_message(turn)

    async def _stash(
        self,
        turn: ConversationTurn,
        intent: IntentSpec,
        result: Result[BackendResponse],
        reply_field: Optional[str] = None,
    ) -> None:
        """Store the reply on the session for a later display node. Nothing is sent to the user."""
        if result.ok:
            response = result.value
            turn.session.render = response.content_type or DEFAULT_RENDER
            turn.session.render_text = response.text
            turn.session.content = response.content_type
            if reply_field:
                self._store_reply(turn, response, reply_field)

            outcome = classify_response(response)
            if outcome == ResponseOutcome.TRANSFER:
                turn.session.transfer = True
                turn.agent_transfer_requested = True
            elif outcome == ResponseOutcome.END_CONVERSATION:
                turn.session.end_conversation = True
                turn.conversation_ended = True
        else:
            turn.session.render = DEFAULT_RENDER
            turn.session.render_text = intent.fallback_text

        turn.session.ownership = Owner.PLATFORM
        await self._acknowledge(turn)

    @staticmethod
    def _store_reply(turn: ConversationTurn, response: BackendResponse, reply_field: str) -> None:
        setattr(turn.session, reply_field, response.text)
        turn.session.content = response.content_type

    async def _acknowledge(self, turn: ConversationTurn) -> ConversationTurn:
        turn.status = WEBHOOK_ACK_STATUS
        return await self.sdk.send_webhook_response(turn)

    # Bookkeeping

    def _begin(self, turn: ConversationTurn) -> None:
        if not turn.correlation_id:
            turn.correlation_id = self.events.generate_correlation_id()
        self.sessions.touch(turn.conversation_id)

    def _finish(self, path: str, result: Result[ConversationTurn]) -> Result[ConversationTurn]:
        self.health.record_turn(path, ok=result.ok)
        return result

    async def _fail_turn(self, turn: ConversationTurn, code: str, exc: Exception) -> Result[ConversationTurn]:
        self.events.error(code, {"error": str(exc), "conversation_id": turn.conversation_id}, turn.correlation_id)
        try:
            await trigger_agent_transfer(turn, self.sdk, self.events, HOLD_MESSAGE, reason=ErrorKind.HANDLER_EXCEPTION.value)
        except Exception as send_exc:
            mark_agent_transfer(turn, HOLD_MESSAGE)
            self.events.error(code, {"error": str(send_exc), "stage": "escalation"}, turn.correlation_id)
        return Result.failure(str(exc), ErrorKind.HANDLER_EXCEPTION, value=turn)

    def _log_event(self, turn: ConversationTurn) -> None:
        fields = {"conversation_id": turn.conversation_id}
        if turn.context.get("currentNodeType") == "agentTransfer":
            self.events.info("AGENT_TRANSFER_INITIATED", fields, turn.correlation_id)
        meta = turn.context.get("CCAIMetaInfo")
        if isinstance(meta, dict) and meta.get("agentId"):
            self.events.info("AGENT_CONNECTED", {**fields, "agent_id": meta["agentId"]}, turn.correlation_id)
        if turn.session.end_conversation and turn.session.ownership == Owner.PLATFORM:
            self.events.info("AGENT_SESSION_ENDED", fields, turn.correlation_id)
