from __future__ import annotations

from typing import Protocol

from chat_relay.application.dto.principal import Principal


class TokenVerifier(Protocol):
    """Turns a bearer token into the claimed identity.

    Raises on an invalid, expired or malformed token. Whether the claimed
    user still exists is checked separately at handshake time.
    """

    async def verify(self, token: str) -> Principal: ...
