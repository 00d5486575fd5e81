"""Stateless relay of WebRTC call signaling between two live connections."""
from __future__ import annotations

import logging
from typing import Any

from chat_relay.application.exceptions import UnauthorizedError
from chat_relay.domain.value_objects.enums import CallRejectReason
from chat_relay.infrastructure.ws.connection import Connection
from chat_relay.infrastructure.ws.protocol import OutboundEvent
from chat_relay.services.context import RealtimeContext

logger = logging.getLogger(__name__)


async def call_user(
    ctx: RealtimeContext,
    conn: Connection,
    target_id: int,
    signal: Any,
    claimed_from: int | None = None,
) -> bool:
    """Offer a call. An unreachable callee yields a synthesized offline rejection."""
    if claimed_from is not None and claimed_from != conn.user_id:
        raise UnauthorizedError("Unauthorized caller ID")

    delivered = await _forward(
        ctx,
        target_id,
        OutboundEvent.INCOMING_CALL,
        {
            "from": conn.user_id,
            "display_name": conn.principal.display_name,
            "signal": signal,
        },
    )
    if delivered:
        logger.info("Call request from user %d to user %d", conn.user_id, target_id)
        return True

    logger.debug("Call failed: user %d is offline", target_id)
    await conn.send(
        OutboundEvent.CALL_REJECTED,
        {"user_id": target_id, "reason": CallRejectReason.OFFLINE.value},
    )
    return False


async def accept_call(ctx: RealtimeContext, conn: Connection, target_id: int, signal: Any) -> bool:
    return await _forward(
        ctx, target_id, OutboundEvent.CALL_ACCEPTED,
        {"from": conn.user_id, "signal": signal},
    )


async def reject_call(ctx: RealtimeContext, conn: Connection, target_id: int) -> bool:
    return await _forward(
        ctx, target_id, OutboundEvent.CALL_REJECTED,
        {
            "from": conn.user_id,
            "user_id": conn.user_id,
            "reason": CallRejectReason.DECLINED.value,
        },
    )


async def end_call(ctx: RealtimeContext, conn: Connection, target_id: int) -> bool:
    return await _forward(ctx, target_id, OutboundEvent.CALL_ENDED, {"from": conn.user_id})


async def relay_ice_candidate(
    ctx: RealtimeContext,
    conn: Connection,
    target_id: int,
    candidate: Any,
) -> bool:
    return await _forward(
        ctx, target_id, OutboundEvent.ICE_CANDIDATE,
        {"from": conn.user_id, "candidate": candidate},
    )


async def _forward(
    ctx: RealtimeContext,
    target_id: int,
    event_type: str,
    data: dict[str, Any],
) -> bool:
    target = ctx.registry.lookup(target_id)
    if target is None:
        logger.debug("Dropping %s from user %s: user %d unreachable", event_type, data["from"], target_id)
        return False
    return await target.send(event_type, data)
