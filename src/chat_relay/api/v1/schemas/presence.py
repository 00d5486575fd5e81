from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from chat_relay.domain.value_objects.enums import UserStatus


class PresenceResponse(BaseModel):
    user_id: int
    status: UserStatus
    last_seen_at: datetime | None
    connected: bool


class OnlineUsersResponse(BaseModel):
    user_ids: list[int]
