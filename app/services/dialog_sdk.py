"""Dialog SDK: delivers a turn's message to the user, the bot, or back to the webhook."""

from abc import ABC, abstractmethod
from typing import Optional

import httpx

from app.logging_config import get_logger
from app.schemas.turn import ConversationTurn, Delivery

logger = get_logger("dialog_sdk")


class DialogSDK(ABC):
    @abstractmethod
    async def send_bot_message(self, turn: ConversationTurn) -> ConversationTurn: ...

    @abstractmethod
    async def send_user_message(self, turn: ConversationTurn) -> ConversationTurn: ...

    @abstractmethod
    async def send_webhook_response(self, turn: ConversationTurn) -> ConversationTurn: ...


class ResponseDialogSDK(DialogSDK):
    """Delivery is a directive in the HTTP response; the platform acts on it."""

    async def send_bot_message(self, turn: ConversationTurn) -> ConversationTurn:
        turn.delivery = Delivery.BOT_MESSAGE
        return turn

    async def send_user_message(self, turn: ConversationTurn) -> ConversationTurn:
        turn.delivery = Delivery.USER_MESSAGE
        return turn

    async def send_webhook_response(self, turn: ConversationTurn) -> ConversationTurn:
        turn.delivery = Delivery.WEBHOOK_RESPONSE
        return turn


class CallbackDialogSDK(ResponseDialogSDK):
    """Also posts each delivery to the platform callback URL."""

    def __init__(self, callback_url: str, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.callback_url = callback_url
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def _deliver(self, turn: ConversationTurn) -> ConversationTurn:
        response = await self._client.post(
            self.callback_url,
            json={
                "delivery": turn.delivery.value,
                "message": turn.message,
                "conversationId": turn.conversation_id,
                "agentTransfer": turn.agent_transfer_requested,
            },
        )
        response.raise_for_status()
        logger.info(f"Delivered {turn.delivery.value} for conversation {turn.conversation_id}")
        return turn

    async def send_bot_message(self, turn: ConversationTurn) -> ConversationTurn:
        return await self._deliver(await super().send_bot_message(turn))

    async def send_user_message(self, turn: ConversationTurn) -> ConversationTurn:
        return await self._deliver(await super().send_user_message(turn))

    async def send_webhook_response(self, turn: ConversationTurn) -> ConversationTurn:
        return await self._deliver(await super().send_webhook_response(turn))

    async def aclose(self) -> None:
        await self._client.aclose()
