"""WebSocket envelope, event names and per-event payload models."""
from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from chat_relay.domain.entities.message import Message


class InboundEvent(StrEnum):
    PING = "ping"
    ACTIVITY_PING = "activity-ping"
    GET_PRESENCE = "get-presence"
    SEND_MESSAGE = "send-message"
    MARK_AS_READ = "mark-as-read"
    CHAT_OPEN = "chat-open"
    CHAT_CLOSE = "chat-close"
    GET_UNREAD_COUNTS = "get-unread-counts"
    TYPING = "typing"
    CALL_USER = "call-user"
    ACCEPT_CALL = "accept-call"
    REJECT_CALL = "reject-call"
    END_CALL = "end-call"
    ICE_CANDIDATE = "ice-candidate"


class OutboundEvent(StrEnum):
    PONG = "pong"
    ERROR = "error"
    PRESENCE_LIST = "presence-list"
    NEW_MESSAGE = "new-message"
    UNREAD_UPDATE = "unread-update"
    UNREAD_COUNTS = "unread-counts"
    MESSAGES_READ = "messages-read"
    USER_TYPING = "user-typing"
    INCOMING_CALL = "incoming-call"
    CALL_ACCEPTED = "call-accepted"
    CALL_REJECTED = "call-rejected"
    CALL_ENDED = "call-ended"
    ICE_CANDIDATE = "ice-candidate"


class WsInbound(BaseModel):
    """Client → Server."""

    type: str
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str
    data: dict[str, Any] = {}


class SendMessagePayload(BaseModel):
    sender_id: int
    receiver_id: int
    content: str = Field(default="", max_length=10_000)
    attachment_url: str | None = Field(default=None, max_length=500)
    attachment_type: str | None = Field(default=None, max_length=100)
    client_msg_id: str | None = Field(default=None, max_length=64)

    @model_validator(mode="after")
    def _has_body(self) -> SendMessagePayload:
        if not self.content.strip() and not self.attachment_url:
            raise ValueError("content or attachment_url is required")
        return self


class MarkAsReadPayload(BaseModel):
    sender_id: int
    before_timestamp: datetime | None = None


class ChatOpenPayload(BaseModel):
    owner_id: int
    with_id: int


class TypingPayload(BaseModel):
    receiver_id: int
    is_typing: bool = True


class CallPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    to: int
    signal: Any = None
    from_: int | None = Field(default=None, alias="from")


class IceCandidatePayload(BaseModel):
    to: int
    candidate: Any


class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sender_id: int
    receiver_id: int
    content: str
    attachment_url: str | None
    attachment_type: str | None
    is_read: bool
    read_at: datetime | None
    created_at: datetime


def message_to_wire(message: Message, client_msg_id: str | None = None) -> dict[str, Any]:
    return {
        "message": MessageOut.model_validate(message).model_dump(mode="json"),
        "client_msg_id": client_msg_id,
    }
