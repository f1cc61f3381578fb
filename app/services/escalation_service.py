from typing import Optional

from app.logging_config import EventLogger
from app.schemas.turn import ConversationTurn, Owner
from app.services.dialog_sdk import DialogSDK

TRANSFER_MESSAGE = "Sorry, unfortunately I'm not able to help you with that. Transferring you to a Staples Expert."
HOLD_MESSAGE = "Please hold while I transfer you to an agent."


def mark_agent_transfer(turn: ConversationTurn, message: Optional[str] = None) -> ConversationTurn:
    """Flag the turn for a human agent and hand ownership back to the platform."""
    turn.session.ownership = Owner.PLATFORM
    turn.agent_transfer_requested = True
    turn.session.transfer = True
    turn.message = message or TRANSFER_MESSAGE
    return turn


async def trigger_agent_transfer(
    turn: ConversationTurn,
    sdk: DialogSDK,
    events: EventLogger,
    message: Optional[str] = None,
    reason: str = "transfer",
) -> ConversationTurn:
    """Escalate to a human agent and send the hand-off message to the user."""
    mark_agent_transfer(turn, message)
    events.info(
        "AGENT_TRANSFER_TRIGGERED",
        {"conversation_id": turn.conversation_id, "reason": reason, "owner": Owner.PLATFORM.value},
        turn.correlation_id,
    )
    return await sdk.send_bot_message(turn)
