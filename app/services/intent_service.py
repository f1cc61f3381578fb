"""Webhook intents: instruction text templates and how their replies are handled."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from app.schemas.turn import ConversationTurn


class OutcomeMode(str, Enum):
    DIRECT_SEND = "direct_send"
    STASH = "stash"
    HANDOVER = "handover"


@dataclass(frozen=True)
class IntentSpec:
    key: str
    template: Callable[[ConversationTurn], str]
    mode: OutcomeMode
    sync_context: bool = True
    fallback_text: Optional[str] = None


def _nested(data: dict, *path: str) -> Any:
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _first(*values: Any) -> Any:
    for value in values:
        if value not in (None, ""):
            return value
    return None


def tracking_order_and_zip(turn: ConversationTurn) -> tuple[Any, Any]:
    collected = _nested(turn.context, "AI_Assisted_Dialogs", "collectInfoTrack", "entities") or {}
    order_number = _first(collected.get("orderNumber"), turn.session.order_number, turn.context.get("orderNumber"))
    zip_code = _first(collected.get("zipCode"), turn.session.zip_code, turn.context.get("zipCode"))
    return order_number, zip_code


def _tracking(turn: ConversationTurn) -> str:
    order_number, zip_code = tracking_order_and_zip(turn)
    return f"can you help me track my order? My order number is {order_number} and zip code is {zip_code}"


def _return_status(turn: ConversationTurn) -> str:
    order_number = _first(turn.context.get("orderNumber"), turn.session.order_number)
    zip_code = _first(turn.context.get("zipCode"), turn.session.zip_code)
    return f"Check the status for Return an order with order number {order_number} and ZipCode {zip_code}"


def _store_locator(turn: ConversationTurn) -> str:
    zip_code = _first(turn.context.get("zipCode"), turn.session.zip_code)
    return (
        f"Directly give all the information about three nearest store based on this zip code:{zip_code}"
        "Give it all information at first go and DO not ask for permission."
    )


def _cancel_item(turn: ConversationTurn) -> str:
    order_number = turn.context.get("orderNumberForCancelItem")
    zip_code = turn.context.get("zipcodeForCancelItem")
    return f"Cancel Item having Order Number {order_number} and ZipCode {zip_code}"


def _cancel_order(turn: ConversationTurn) -> str:
    order_number = turn.context.get("orderNumberForCancelOrder")
    zip_code = turn.context.get("zipcodeForCancelOrder")
    return f"Cancel the Entire Order having Order Number {order_number} and ZipCode {zip_code}"


def _change_address(turn: ConversationTurn) -> str:
    order_number = turn.context.get("orderNumberForChangeAddress")
    if order_number:
        zip_code = turn.context.get("zipcodeForChangeAddress")
        return f"Change my shipping address having order number {order_number} and zip code is {zip_code}"
    return (
        "I want to add a new shipping location to my Staples account "
        "(enter address, set delivery preferences, and update contact details)."
    )


def _fixed(text: str) -> Callable[[ConversationTurn], str]:
    return lambda turn: text


INTENTS: dict[str, IntentSpec] = {
    spec.key: spec
    for spec in (
        IntentSpec(
            "tracking",
            _tracking,
            OutcomeMode.STASH,
            fallback_text="Sorry, I couldn't fetch your tracking details right now.",
        ),
        IntentSpec(
            "return-status",
            _return_status,
            OutcomeMode.STASH,
            fallback_text="Sorry, I couldn't fetch your return status.",
        ),
        IntentSpec(
            "store-locator",
            _store_locator,
            OutcomeMode.STASH,
            fallback_text="Sorry, I couldn't fetch the nearest store details right now.",
        ),
        IntentSpec("cancel-item", _cancel_item, OutcomeMode.DIRECT_SEND),
        IntentSpec("cancel-order", _cancel_order, OutcomeMode.DIRECT_SEND),
        IntentSpec("refund", _fixed("I want to check my refund status."), OutcomeMode.DIRECT_SEND),
        IntentSpec("exchange", _fixed("I want to return or exchange an item."), OutcomeMode.DIRECT_SEND),
        IntentSpec("change-address", _change_address, OutcomeMode.DIRECT_SEND),
        IntentSpec(
            "manage-users",
            _fixed(
                "I want to manage an existing user on my Staples account "
                "(edit details, change roles/permissions, or deactivate)."
            ),
            OutcomeMode.DIRECT_SEND,
        ),
        IntentSpec("add-user", _fixed("I want to add a new user to my Staples account."), OutcomeMode.DIRECT_SEND),
        IntentSpec("reset-password", _fixed("Reset the password"), OutcomeMode.DIRECT_SEND),
        IntentSpec("invoice", _fixed("I need help with an invoice or packing slip."), OutcomeMode.DIRECT_SEND),
        IntentSpec(
            "modify-shipping",
            _fixed("I want to modify an existing shipping location on my Staples account"),
            OutcomeMode.DIRECT_SEND,
        ),
        IntentSpec("account-id", _fixed("I need help with my account or user ID."), OutcomeMode.DIRECT_SEND),
        IntentSpec("missing-item", _fixed("I'm missing an item from my order."), OutcomeMode.DIRECT_SEND),
    )
}


def resolve_intent(component_name: str, components: dict[str, str]) -> Optional[IntentSpec]:
    """Map a webhook component name to its intent, None when the bot does not route it."""
    key = components.get(component_name)
    if key is None:
        return None
    return INTENTS.get(key)
