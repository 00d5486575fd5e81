from __future__ import annotations

from datetime import datetime
from typing import Protocol

from chat_relay.application.dto.message import SendMessageDTO
from chat_relay.domain.entities.message import Message


class MessageReader(Protocol):
    async def get_by_id(self, message_id: int) -> Message | None: ...

    async def list_between(
        self,
        user_a: int,
        user_b: int,
        *,
        page: int = 1,
        limit: int = 50,
    ) -> list[Message]:
        """Return one page of the conversation, oldest first within the page."""
        ...

    async def count_between(self, user_a: int, user_b: int) -> int: ...

    async def grouped_unread_counts(self, owner_id: int) -> dict[int, int]:
        """Map sender_id -> number of unread messages addressed to owner_id."""
        ...


class MessageWriter(Protocol):
    async def create(self, data: SendMessageDTO, created_at: datetime) -> Message: ...

    async def mark_read(
        self,
        sender_id: int,
        receiver_id: int,
        read_at: datetime,
        *,
        before: datetime | None = None,
    ) -> int:
        """Flag unread messages sender -> receiver as read. Returns rows updated."""
        ...

    async def delete(self, message_id: int) -> None: ...
