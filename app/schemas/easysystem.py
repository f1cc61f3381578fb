"""Wire models for the EasySystem backend endpoints."""

from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

CHANNEL = "Kore"
ASSISTANT_TYPE = "STANDARD"


class SendMessageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    conversation_id: Optional[str] = Field(default=None, alias="conversationId")
    external_conversation_id: Optional[str] = Field(default=None, alias="externalConversationId")
    business_unit: Optional[str] = Field(default=None, alias="businessUnit")


class SaveMessageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    external_conversation_id: Optional[str] = Field(default=None, alias="externalConversationId")
    business_unit: Optional[str] = Field(default=None, alias="businessUnit")
    role: Literal["user", "assistant"]
    channel: str = CHANNEL


class ContextLoadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    external_conversation_id: Optional[str] = Field(default=None, alias="externalConversationId")
    conversation_id: Optional[str] = Field(default=None, alias="conversationId")
    assistant_type: str = Field(default=ASSISTANT_TYPE, alias="assistantType")
    channel: str = CHANNEL
    entity_map: dict[str, str] = Field(default_factory=dict, alias="entityMap")
    logged_in: Literal["true", "false"] = Field(default="false", alias="loggedIn")


class BackendResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    text: str = ""
    transfer: bool = False
    end_conversation: bool = Field(
        default=False,
        validation_alias=AliasChoices("endConversation", "conversationEnd", "end_conversation"),
        serialization_alias="endConversation",
    )
    content_type: Optional[str] = Field(default=None, alias="contentType")

    @field_validator("text", mode="before")
    @classmethod
    def _none_text_is_empty(cls, value):
        return "" if value is None else value

    @field_validator("transfer", "end_conversation", mode="before")
    @classmethod
    def _none_flag_is_false(cls, value):
        return False if value is None else value


def to_wire(model: BaseModel) -> dict:
    return model.model_dump(by_alias=True)
