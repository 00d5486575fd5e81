from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Message:
    id: int
    sender_id: int
    receiver_id: int
    content: str
    attachment_url: str | None
    attachment_type: str | None
    is_read: bool
    read_at: datetime | None
    created_at: datetime
