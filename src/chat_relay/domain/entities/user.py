from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from chat_relay.domain.value_objects.enums import UserStatus


@dataclass(frozen=True, slots=True)
class User:
    """Presence-relevant view of a user row owned by the accounts service."""

    id: int
    username: str
    display_name: str | None
    status: UserStatus
    last_seen_at: datetime | None

    @property
    def name(self) -> str:
        return self.display_name or self.username
