from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class MessageResponse(BaseModel):
    id: int
    sender_id: int
    receiver_id: int
    content: str
    attachment_url: str | None
    attachment_type: str | None
    is_read: bool
    read_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class PaginationInfo(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class ConversationPageResponse(BaseModel):
    messages: list[MessageResponse]
    pagination: PaginationInfo
