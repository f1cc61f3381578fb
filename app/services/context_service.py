"""Context Synchronizer: pushes an entity snapshot of the turn to the backend."""

import json
from typing import TYPE_CHECKING, Any, Optional

from app.logging_config import EventLogger
from app.schemas.easysystem import ContextLoadRequest, to_wire
from app.schemas.turn import ConversationTurn
from app.services.circuit_breaker import CONTEXT_SERVICE
from app.services.profiles import BusinessUnitProfile, EntityMapSource

if TYPE_CHECKING:
    from app.services.backend_client import BackendClient


def pick_first(*values: Any) -> Any:
    """First value that is not None and not an empty string."""
    for value in values:
        if value is not None and value != "":
            return value
    return None


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _cart_first_zip(custom_data: dict) -> Any:
    lines = _as_dict(custom_data.get("cart")).get("lines")
    if isinstance(lines, list) and lines:
        return _as_dict(lines[0]).get("zipcode")
    return None


def derive_entities(turn: ConversationTurn) -> dict[str, Any]:
    """Identifier candidates from entities, user profile, user session and custom data."""
    entities = _as_dict(turn.context.get("entities"))
    profile = turn.session.user_profile
    user = turn.session.user_session
    cd = turn.session.custom_data

    return {
        "CUSTOMER_NUMBER": pick_first(
            entities.get("CUSTOMER_NUMBER"),
            profile.get("CUSTOMER_NUMBER"),
            user.get("CUSTOMER_NUMBER"),
            cd.get("accountNumber"),
            cd.get("master"),
        ),
        "ORDER_NUMBER": pick_first(
            entities.get("ORDER_NUMBER"),
            entities.get("orderNumberCollect"),
            entities.get("orderNumberEntity"),
            entities.get("orderEntity"),
        ),
        "EMAIL": pick_first(
            entities.get("EMAIL"),
            profile.get("EMAIL"),
            user.get("emailId"),
            user.get("email"),
            cd.get("email"),
        ),
        "ACCOUNT_NUMBER": pick_first(
            entities.get("ACCOUNT_NUMBER"),
            profile.get("ACCOUNT_NUMBER"),
            user.get("ACCOUNT_NUMBER"),
            cd.get("accountNumber"),
            cd.get("master"),
        ),
        "DIVISION": pick_first(
            entities.get("DIVISION"),
            profile.get("DIVISION"),
            user.get("DIVISION"),
            cd.get("div"),
        ),
        "USER_ID": pick_first(
            entities.get("USER_ID"),
            profile.get("USER_ID"),
            user.get("USER_ID"),
            profile.get("userId"),
            cd.get("newUserID"),
            cd.get("userid"),
        ),
        "ZIPCODE": pick_first(
            entities.get("ZIPCODE"),
            entities.get("zipCodeCollect"),
            entities.get("zipCodeEntity"),
            entities.get("zipEntity"),
            entities.get("ZipCodeReturn"),
            entities.get("getZipCode"),
            entities.get("modifyZipCode"),
            cd.get("zipcode"),
            cd.get("shiptozipcode"),
            _cart_first_zip(cd),
        ),
    }


def identity_fields(turn: ConversationTurn) -> dict[str, Any]:
    cd = turn.session.custom_data
    return {"USER_ID": cd.get("userid") or None, "MASTER_ACCOUNT": cd.get("master") or None}


def is_logged_in(turn: ConversationTurn) -> str:
    """``"true"`` or ``"false"``: explicit login flags first, then known customer identity."""
    entities = derive_entities(turn)
    flag = pick_first(
        turn.session.is_logged_in,
        turn.session.user_session.get("isLoggedIn"),
        turn.session.user_profile.get("isLoggedIn"),
        turn.session.custom_data.get("loggedIn"),
        entities["EMAIL"] or entities["CUSTOMER_NUMBER"],
    )
    if isinstance(flag, str):
        flag = flag.strip().lower() not in ("", "false", "0", "no")
    return "true" if flag else "false"


def _stringify(values: dict[str, Any]) -> dict[str, str]:
    return {key: str(value) for key, value in values.items() if value is not None and value != ""}


def build_entity_map(turn: ConversationTurn, profile: BusinessUnitProfile) -> dict[str, str]:
    if profile.entity_map_source == EntityMapSource.SESSION_PAYLOAD:
        return _stringify(turn.session.entity_payload or {})
    if profile.entity_map_source == EntityMapSource.IDENTITY:
        return _stringify(identity_fields(turn))
    return _stringify(derive_entities(turn))


def build_context_payload(turn: ConversationTurn, profile: BusinessUnitProfile) -> ContextLoadRequest:
    conversation_id = turn.conversation_id
    return ContextLoadRequest(
        external_conversation_id=conversation_id,
        conversation_id=conversation_id,
        entity_map=build_entity_map(turn, profile),
        logged_in=is_logged_in(turn),
    )


def build_headers(
    turn: ConversationTurn,
    profile: BusinessUnitProfile,
    include_session_headers: bool = True,
    events: Optional[EventLogger] = None,
) -> dict[str, str]:
    """Header set for a backend call.

    ``isLoggedIn`` and the ``x-custom-data`` identity blob ride only on send and
    context calls (``include_session_headers``), and only for profiles that use them.
    """
    headers = {"Content-Type": "application/json"}
    business_unit = profile.resolve_business_unit(turn.business_unit)
    if business_unit:
        headers["business-unit"] = business_unit
    if not include_session_headers:
        return headers

    if profile.send_logged_in_header:
        headers["isLoggedIn"] = is_logged_in(turn)
    if profile.send_identity_header:
        identity = identity_fields(turn)
        if events is not None and None in identity.values():
            events.warn(
                "MISSING_IDENTITY_FIELDS",
                {"conversation_id": turn.conversation_id, "missing": [k for k, v in identity.items() if v is None]},
                turn.correlation_id,
            )
        headers["x-custom-data"] = json.dumps(identity)
    return headers


class ContextSynchronizer:
    """Sends the context snapshot before an intent call. Never fails the turn."""

    def __init__(self, backend: "BackendClient", url: str, events: EventLogger):
        self.backend = backend
        self.url = url
        self.events = events

    async def sync(self, turn: ConversationTurn, profile: BusinessUnitProfile) -> bool:
        payload = build_context_payload(turn, profile)
        result = await self.backend.post(CONTEXT_SERVICE, self.url, to_wire(payload), turn, profile)
        if not result.ok:
            self.events.warn(
                "CONTEXT_SYNC_FAILED",
                {"conversation_id": turn.conversation_id, "error": result.error, "error_code": result.error_code},
                turn.correlation_id,
            )
        return result.ok
