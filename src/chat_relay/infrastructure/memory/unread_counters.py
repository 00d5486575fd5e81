"""In-memory per-recipient unread counters, reconciled from the message store."""
from __future__ import annotations

import asyncio
import logging

from chat_relay.application.repositories.message import MessageReader

logger = logging.getLogger(__name__)


class UnreadCounterStore:
    """owner_id -> {sender_id: unread count}.

    Counters only move by +1 per qualifying message, drop to 0 on read, or are
    replaced wholesale by :meth:`reconcile_from_store`. A zero count is stored
    as an absent entry, so the map holds only pairs with pending messages.
    """

    def __init__(self) -> None:
        self._counts: dict[int, dict[int, int]] = {}
        self._lock = asyncio.Lock()

    async def increment(self, owner_id: int, sender_id: int) -> int:
        async with self._lock:
            bucket = self._counts.setdefault(owner_id, {})
            bucket[sender_id] = bucket.get(sender_id, 0) + 1
            return bucket[sender_id]

    async def reset(self, owner_id: int, sender_id: int) -> None:
        """Zero one counter. Zero entries and empty owners are not kept."""
        async with self._lock:
            bucket = self._counts.get(owner_id)
            if bucket is None:
                return
            bucket.pop(sender_id, None)
            if not bucket:
                del self._counts[owner_id]

    async def snapshot(self, owner_id: int) -> dict[int, int]:
        async with self._lock:
            return dict(self._counts.get(owner_id, {}))

    async def reconcile_from_store(self, owner_id: int, reader: MessageReader) -> dict[int, int]:
        """Recount from persisted rows and overwrite the owner's whole map."""
        counts = await reader.grouped_unread_counts(owner_id)
        async with self._lock:
            previous = self._counts.get(owner_id, {})
            current = {sender: n for sender, n in counts.items() if n}
            if current:
                self._counts[owner_id] = current
            else:
                self._counts.pop(owner_id, None)
        if previous != current:
            logger.debug("Unread counters for user %d corrected: %s -> %s", owner_id, previous, current)
        return dict(current)
