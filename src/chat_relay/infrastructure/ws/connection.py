from __future__ import annotations

import logging
import uuid
from typing import Any, Protocol

from chat_relay.application.dto.principal import Principal
from chat_relay.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)

# Sent to a connection displaced by a newer one for the same user.
SUPERSEDED_CLOSE_CODE = 4000


class Transport(Protocol):
    """The slice of starlette's WebSocket a connection needs."""

    async def send_text(self, data: str) -> None: ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None: ...


class Connection:
    """One live realtime session: identity, transport and the open-chat marker."""

    def __init__(
        self,
        principal: Principal,
        transport: Transport,
        connection_id: str | None = None,
    ) -> None:
        self.principal = principal
        self.connection_id = connection_id or f"ws-{principal.user_id}-{uuid.uuid4().hex[:8]}"
        self.active_chat: int | None = None
        self._transport = transport
        self._closed = False

    def __repr__(self) -> str:
        return f"<Connection {self.connection_id} user={self.user_id}>"

    @property
    def user_id(self) -> int:
        return self.principal.user_id

    @property
    def is_open(self) -> bool:
        return not self._closed

    def mark_closed(self) -> None:
        self._closed = True

    async def close(self, code: int, reason: str = "") -> None:
        """Close the transport from the server side. Later sends are dropped."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._transport.close(code=code, reason=reason)
        except Exception:
            logger.debug("Close of %s failed", self.connection_id, exc_info=True)

    def open_chat(self, peer_id: int) -> bool:
        """Set the open conversation. Returns False when it was already open."""
        if self.active_chat == peer_id:
            return False
        self.active_chat = peer_id
        return True

    def close_chat(self) -> None:
        self.active_chat = None

    async def send(self, event_type: str, data: dict[str, Any]) -> bool:
        """Send one event. Returns False if the connection is gone."""
        if self._closed:
            return False
        raw = WsOutbound(type=event_type, data=data).model_dump_json()
        try:
            await self._transport.send_text(raw)
        except Exception:
            logger.warning(
                "Send of %s to user %d failed, marking %s closed",
                event_type, self.user_id, self.connection_id,
                exc_info=True,
            )
            self._closed = True
            return False
        return True
