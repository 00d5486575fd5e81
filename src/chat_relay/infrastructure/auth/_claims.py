from __future__ import annotations

from typing import Any

from chat_relay.application.dto.principal import Principal


def principal_from_claims(payload: dict[str, Any]) -> Principal:
    """Build a Principal from decoded JWT claims.

    Accepts ``sub`` or the legacy ``id`` claim for the user id. The display
    name here is provisional; the handshake replaces it with the stored one.
    """
    raw_id = payload.get("sub", payload.get("id"))
    if raw_id is None:
        raise ValueError("token has no subject")
    return Principal(
        user_id=int(raw_id),
        display_name=str(payload.get("name") or payload.get("username") or ""),
    )
