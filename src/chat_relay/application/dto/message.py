from __future__ import annotations

import math
from dataclasses import dataclass

from chat_relay.domain.entities.message import Message


@dataclass(frozen=True, slots=True)
class SendMessageDTO:
    sender_id: int
    receiver_id: int
    content: str
    attachment_url: str | None = None
    attachment_type: str | None = None
    client_msg_id: str | None = None


@dataclass(frozen=True, slots=True)
class MessagePage:
    messages: list[Message]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0
