"""Adapter between the dialog platform's nested event payload and ConversationTurn.

The platform sends::

    {"message": ..., "agent_transfer": ...,
     "context": {"session": {"BotUserSession": {...}, "UserSession": {"owner": ...}}, ...}}
"""

import copy
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.turn import ConversationTurn, Owner, TurnSession


class PlatformPayload(BaseModel):
    """Request body accepted from the platform. Anything unknown is kept."""

    model_config = ConfigDict(extra="allow")

    message: Any = None
    agent_transfer: bool = False
    context: dict[str, Any] = Field(default_factory=dict)


class MalformedSessionError(ValueError):
    """The platform session block is not the nested mapping the bots expect."""


def _owner(value: Any) -> Owner:
    try:
        return Owner(value)
    except ValueError:
        return Owner.PLATFORM


def _mapping(value: Any, name: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise MalformedSessionError(f"{name} must be an object, got {type(value).__name__}")
    return value


def turn_from_payload(payload: dict) -> ConversationTurn:
    """Build a turn. Raises ValueError (pydantic.ValidationError included) on a malformed session shape."""
    context = dict(payload.get("context") or {})
    session = _mapping(context.pop("session", None), "session")
    bot_user_session = _mapping(session.get("BotUserSession"), "BotUserSession")
    user_session = _mapping(session.get("UserSession"), "UserSession")

    turn_session = TurnSession.model_validate(
        {**bot_user_session, "ownership": _owner(user_session.get("owner")), "userSession": user_session}
    )
    message = payload.get("message")
    return ConversationTurn(
        message=message if isinstance(message, str) else None,
        session=turn_session,
        context=context,
        agent_transfer=bool(payload.get("agent_transfer")),
    )


def fallback_turn(payload: dict) -> ConversationTurn:
    """Bare turn for a payload whose session could not be read, so it can still be escalated."""
    context = {key: value for key, value in (payload.get("context") or {}).items() if key != "session"}
    message = payload.get("message")
    return ConversationTurn(message=message if isinstance(message, str) else None, context=context)


def _child(parent: dict, key: str) -> dict:
    value = parent.get(key)
    if not isinstance(value, dict):
        value = parent[key] = {}
    return value


def apply_turn_to_payload(payload: dict, turn: ConversationTurn) -> dict:
    """Copy of ``payload`` with the turn's changes written back in the platform's shape."""
    result = copy.deepcopy(payload)
    result["message"] = turn.message
    result["agent_transfer"] = turn.agent_transfer_requested
    if turn.status:
        result["status"] = turn.status

    session = _child(_child(result, "context"), "session")
    bot_user_session = _child(session, "BotUserSession")
    bot_user_session.update(
        turn.session.model_dump(by_alias=True, exclude_unset=True, exclude={"ownership", "user_session"})
    )
    user_session = _child(session, "UserSession")
    user_session["owner"] = turn.session.ownership.value
    return result


class BotTurnResponse(BaseModel):
    success: bool
    delivery: str
    error_code: Optional[str] = None
    data: dict[str, Any]
