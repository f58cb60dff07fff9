"""
Chat wire payloads.

The realtime channel carries two frame shapes: typing indicators and chat
messages. Messages arrive either flat or wrapped as {"message": {...}}.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Literal, Optional, Set, Union

from pydantic import AliasChoices, BaseModel, Field, field_validator


class MessageStatus(str, Enum):
    PENDING = "pending"
    COMMITTED = "committed"
    FAILED = "failed"


class ChatMessage(BaseModel):
    id: Union[int, str]
    conversation_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("conversation_id", "room"),
    )
    sender_id: str = Field(validation_alias=AliasChoices("sender_id", "user"))
    body: str = Field(validation_alias=AliasChoices("body", "message"))
    sent_at: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("sent_at", "timestamp"),
    )
    read_by: Set[str] = Field(default_factory=set)
    status: MessageStatus = MessageStatus.COMMITTED
    client_id: Optional[str] = None

    @field_validator("sender_id", mode="before")
    @classmethod
    def _stringify_sender(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @field_validator("read_by", mode="before")
    @classmethod
    def _stringify_readers(cls, value: Any) -> Any:
        if value is None:
            return set()
        return {str(reader) for reader in value}

    @property
    def is_pending(self) -> bool:
        return self.status is MessageStatus.PENDING

    def is_read_by(self, user_key: str) -> bool:
        return user_key in self.read_by


class TypingEvent(BaseModel):
    type: Literal["typing"] = "typing"
    user_id: str
    is_typing: bool

    @field_validator("user_id", mode="before")
    @classmethod
    def _stringify_user(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value


IncomingFrame = Union[TypingEvent, ChatMessage]


def parse_incoming(payload: Dict[str, Any]) -> Optional[IncomingFrame]:
    """
    Classify a decoded realtime frame.

    Args:
        payload: JSON-decoded frame.

    Returns:
        TypingEvent, ChatMessage, or None for frames of unknown shape.

    Raises:
        pydantic.ValidationError: If a recognised frame has invalid fields.
    """
    if payload.get("type") == "typing":
        return TypingEvent.model_validate(payload)

    if "id" in payload:
        return ChatMessage.model_validate(payload)

    nested = payload.get("message")
    if isinstance(nested, dict) and "id" in nested:
        if "client_id" in payload and "client_id" not in nested:
            nested = {**nested, "client_id": payload["client_id"]}
        return ChatMessage.model_validate(nested)

    return None
