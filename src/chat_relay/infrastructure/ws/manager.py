"""In-process registry of live realtime connections."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable

from chat_relay.infrastructure.ws.connection import Connection

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Maps user id to its single live connection. Newest registration wins."""

    def __init__(self) -> None:
        self._connections: dict[int, Connection] = {}
        self._lock = asyncio.Lock()

    async def register(self, conn: Connection) -> Connection | None:
        """Register ``conn`` and return the connection it replaced, if any."""
        async with self._lock:
            previous = self._connections.get(conn.user_id)
            self._connections[conn.user_id] = conn
            total = len(self._connections)
        if previous is not None and previous is not conn:
            logger.info(
                "User %d reconnected: %s replaces %s",
                conn.user_id, conn.connection_id, previous.connection_id,
            )
        logger.debug("Registered %s (online=%d)", conn.connection_id, total)
        return previous if previous is not conn else None

    async def unregister(self, conn: Connection) -> bool:
        """Drop ``conn`` if it is still the user's current entry.

        Returns False when it was already removed or superseded, which makes
        disconnect cleanup safe to repeat.
        """
        async with self._lock:
            if self._connections.get(conn.user_id) is not conn:
                return False
            del self._connections[conn.user_id]
            total = len(self._connections)
        logger.debug("Unregistered %s (online=%d)", conn.connection_id, total)
        return True

    def lookup(self, user_id: int) -> Connection | None:
        conn = self._connections.get(user_id)
        if conn is None or not conn.is_open:
            return None
        return conn

    def is_online(self, user_id: int) -> bool:
        return self.lookup(user_id) is not None

    async def snapshot(self) -> dict[int, Connection]:
        """Consistent copy of the registry, for building broadcasts."""
        async with self._lock:
            return dict(self._connections)

    async def online_user_ids(self) -> list[int]:
        return sorted(await self.snapshot())

    async def broadcast(
        self,
        event_type: str,
        data: dict[str, Any],
        targets: Iterable[Connection] | None = None,
    ) -> int:
        """Fire-and-forget send to ``targets`` (default: everyone). Returns deliveries."""
        if targets is None:
            targets = (await self.snapshot()).values()
        delivered = 0
        for conn in list(targets):
            if await conn.send(event_type, data):
                delivered += 1
        return delivered
