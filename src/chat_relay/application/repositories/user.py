from __future__ import annotations

from datetime import datetime
from typing import Protocol

from chat_relay.domain.entities.user import User
from chat_relay.domain.value_objects.enums import UserStatus


class UserReader(Protocol):
    async def get_by_id(self, user_id: int) -> User | None: ...


class UserStatusWriter(Protocol):
    async def set_status(self, user_id: int, status: UserStatus, at: datetime) -> None:
        """Set status and refresh last_seen_at in one write."""
        ...

    async def touch_last_seen(self, user_id: int, at: datetime) -> None: ...
