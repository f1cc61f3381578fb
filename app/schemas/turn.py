from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Owner(str, Enum):
    """Who interprets the next user message. Values match the platform session store."""

    PLATFORM = "kore"
    BACKEND_SYSTEM = "easysystem"


class Delivery(str, Enum):
    NONE = "none"
    BOT_MESSAGE = "bot_message"
    USER_MESSAGE = "user_message"
    WEBHOOK_RESPONSE = "webhook_response"


class TurnSession(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    ownership: Owner = Owner.PLATFORM
    business_unit: Optional[str] = Field(default=None, alias="businessUnit")
    conversation_id: Optional[str] = Field(default=None, alias="conversationSessionId")
    custom_data: dict[str, Any] = Field(default_factory=dict, alias="customData")
    entity_payload: Optional[dict[str, Any]] = Field(default=None, alias="entityPayload")
    user_profile: dict[str, Any] = Field(default_factory=dict, alias="userProfile")
    user_session: dict[str, Any] = Field(default_factory=dict, alias="userSession")
    is_logged_in: Optional[Any] = Field(default=None, alias="isLoggedIn")
    order_number: Optional[str] = Field(default=None, alias="orderNumber")
    zip_code: Optional[str] = Field(default=None, alias="zipCode")

    transfer: bool = False
    end_conversation: bool = Field(default=False, alias="endConversationFromEasySystem")
    render: Optional[str] = None
    render_text: Optional[str] = Field(default=None, alias="renderText")
    content: Optional[str] = None
    track_order: Optional[str] = Field(default=None, alias="trackOrder")
    store_info: Optional[str] = Field(default=None, alias="storeInfo")

    @field_validator("business_unit", "conversation_id", "order_number", "zip_code", mode="before")
    @classmethod
    def _scalar_id_is_str(cls, v):
        # Ids and zip codes arrive as numbers from some channels.
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("custom_data", "user_profile", "user_session", mode="before")
    @classmethod
    def _none_map_is_empty(cls, v):
        return {} if v is None else v


class ConversationTurn(BaseModel):
    """One platform event and everything the handler does to it."""

    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = None
    session: TurnSession = Field(default_factory=TurnSession)
    context: dict[str, Any] = Field(default_factory=dict)
    agent_transfer_requested: bool = Field(default=False, alias="agent_transfer")
    conversation_ended: bool = False
    status: Optional[str] = None
    delivery: Delivery = Delivery.NONE
    correlation_id: Optional[str] = None

    @property
    def business_unit(self) -> Optional[str]:
        return self.session.business_unit

    @property
    def conversation_id(self) -> Optional[str]:
        return self.session.conversation_id

    def has_message(self) -> bool:
        return bool(self.message and self.message.strip())
