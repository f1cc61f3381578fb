"""Business-unit profiles: one per deployed bot variant."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class EntityMapSource(str, Enum):
    SESSION_PAYLOAD = "session_payload"
    DERIVED = "derived"
    IDENTITY = "identity"


@dataclass(frozen=True)
class BusinessUnitProfile:
    bot_name: str
    instance_id: str
    default_business_unit: Optional[str]
    webhook_components: dict[str, str]
    webhook_business_units: Optional[frozenset[str]] = None
    entity_map_source: EntityMapSource = EntityMapSource.DERIVED
    send_logged_in_header: bool = True
    send_identity_header: bool = False
    intent_modes: dict[str, str] = field(default_factory=dict)
    business_unit_intent_modes: dict[str, dict[str, str]] = field(default_factory=dict)
    # intent -> TurnSession attribute that keeps the raw reply text
    reply_fields: dict[str, str] = field(default_factory=dict)

    def outcome_mode_for(self, intent: str, business_unit: Optional[str], default: str) -> str:
        by_unit = self.business_unit_intent_modes.get(business_unit or "", {})
        return by_unit.get(intent) or self.intent_modes.get(intent) or default

    def resolve_business_unit(self, business_unit: Optional[str]) -> Optional[str]:
        return business_unit or self.default_business_unit

    def accepts_webhooks_for(self, business_unit: Optional[str]) -> bool:
        if self.webhook_business_units is None:
            return True
        return business_unit in self.webhook_business_units


SBA_COMPONENTS = {
    "easySystemHook": "tracking",
    "CancelItemHook": "cancel-item",
    "CancelEntireHook": "cancel-order",
    "RefundHook": "refund",
    "ReturnStatusHook": "return-status",
    "ExchangeHook": "exchange",
    "ShippingHook": "change-address",
    "ExistingHook": "manage-users",
    "NewHook": "add-user",
    "easyInvoiceHook": "invoice",
    "ModifyHook": "modify-shipping",
    "ResetHook": "reset-password",
    "AccountHook": "account-id",
    "MissingHook": "missing-item",
}

DOTCOM_COMPONENTS = {
    "easySystemHook": "tracking",
    "easySystemAddressChange": "change-address",
    "easySystemHookstore": "store-locator",
    "resetPasswordWebHook": "reset-password",
    "CheckReturnWebHook": "return-status",
    "ExchangeWebHook": "exchange",
    "RefundWebHook": "refund",
    "CancelEntireOrderWebHook": "cancel-order",
    "CancelItemWebHook": "cancel-item",
}

DOTCOM = BusinessUnitProfile(
    bot_name="EasySystemDotcom",
    instance_id="es-dotcom-bot",
    default_business_unit=None,
    webhook_components=DOTCOM_COMPONENTS,
    webhook_business_units=frozenset({"C"}),
    entity_map_source=EntityMapSource.SESSION_PAYLOAD,
    send_logged_in_header=False,
    intent_modes={"tracking": "handover"},
    reply_fields={"tracking": "track_order", "store-locator": "store_info"},
)

QUILL = BusinessUnitProfile(
    bot_name="EasySystemQuill",
    instance_id="es-quill-bot",
    default_business_unit=None,
    webhook_components={"easySystemHook": "tracking"},
    webhook_business_units=frozenset({"Q", "C", "SA"}),
    entity_map_source=EntityMapSource.SESSION_PAYLOAD,
    send_logged_in_header=False,
    intent_modes={"tracking": "handover"},
)

SBA = BusinessUnitProfile(
    bot_name="EasySystemSBA",
    instance_id="es-sba-bot",
    default_business_unit="SA",
    webhook_components=SBA_COMPONENTS,
    entity_map_source=EntityMapSource.IDENTITY,
    send_identity_header=True,
    reply_fields={"tracking": "track_order"},
)

QUILL_SBA = BusinessUnitProfile(
    bot_name="EasySystemQuillSBA",
    instance_id="es-quill-sba-bot",
    default_business_unit="SA",
    webhook_components=SBA_COMPONENTS,
    business_unit_intent_modes={"Q": {"tracking": "handover"}, "C": {"tracking": "handover"}},
)

PROFILES = {profile.bot_name: profile for profile in (DOTCOM, QUILL, SBA, QUILL_SBA)}


def get_profile(bot_name: str) -> Optional[BusinessUnitProfile]:
    return PROFILES.get(bot_name)
