from enum import Enum

from app.schemas.easysystem import BackendResponse
from app.schemas.turn import Owner


class ResponseOutcome(str, Enum):
    TRANSFER = "transfer"
    END_CONVERSATION = "end_conversation"
    CONTINUE = "continue"


def classify_response(response: BackendResponse) -> ResponseOutcome:
    """Transfer wins over end-of-conversation when both are set."""
    if response.transfer:
        return ResponseOutcome.TRANSFER
    if response.end_conversation:
        return ResponseOutcome.END_CONVERSATION
    return ResponseOutcome.CONTINUE


def resolve_owner(current: Owner, response: BackendResponse, keep_on_continue: bool = True) -> Owner:
    """Owner after a backend reply.

    Transfer and end-of-conversation always give the next message to the
    platform. On a plain reply the owner is kept, unless ``keep_on_continue``
    is False in which case the backend takes over.
    """
    if classify_response(response) is not ResponseOutcome.CONTINUE:
        return Owner.PLATFORM
    if keep_on_continue:
        return current
    return Owner.BACKEND_SYSTEM
