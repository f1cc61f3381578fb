from app.schemas.easysystem import BackendResponse, ContextLoadRequest, SaveMessageRequest, SendMessageRequest
from app.schemas.platform import BotTurnResponse, PlatformPayload
from app.schemas.turn import ConversationTurn, Delivery, Owner, TurnSession

__all__ = [
    "BackendResponse",
    "ContextLoadRequest",
    "SaveMessageRequest",
    "SendMessageRequest",
    "BotTurnResponse",
    "PlatformPayload",
    "ConversationTurn",
    "Delivery",
    "Owner",
    "TurnSession",
]
