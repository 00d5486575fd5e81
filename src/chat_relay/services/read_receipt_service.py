"""Read receipts: flag messages read, zero the counter, tell the sender."""
from __future__ import annotations

import logging
from datetime import datetime

from chat_relay.application.exceptions import UnauthorizedError
from chat_relay.infrastructure.ws.connection import Connection
from chat_relay.infrastructure.ws.protocol import OutboundEvent
from chat_relay.services._store import store_operation
from chat_relay.services.context import RealtimeContext

logger = logging.getLogger(__name__)


async def mark_as_read(
    ctx: RealtimeContext,
    conn: Connection,
    sender_id: int,
    before: datetime | None = None,
) -> int:
    """Mark messages from ``sender_id`` to the caller as read. Returns rows updated."""
    return await _read_and_notify(ctx, conn, sender_id, before)


async def open_chat(
    ctx: RealtimeContext,
    conn: Connection,
    owner_id: int,
    with_id: int,
) -> bool:
    """Record that the caller is viewing ``with_id`` and read that conversation.

    Repeating the call for the conversation that is already open is a no-op
    and returns False.
    """
    if owner_id != conn.user_id:
        raise UnauthorizedError("Unauthorized owner ID")

    previous = conn.active_chat
    if not conn.open_chat(with_id):
        return False
    logger.info("User %d opened chat with user %d", conn.user_id, with_id)
    try:
        await _read_and_notify(ctx, conn, with_id, None)
    except Exception:
        conn.active_chat = previous
        raise
    return True


def close_chat(conn: Connection) -> None:
    if conn.active_chat is not None:
        logger.debug("User %d closed chat with user %d", conn.user_id, conn.active_chat)
    conn.close_chat()


async def _read_and_notify(
    ctx: RealtimeContext,
    conn: Connection,
    sender_id: int,
    before: datetime | None,
) -> int:
    now = ctx.clock.now()
    async with store_operation(ctx, "mark_read") as uow:
        updated = await uow.messages_w.mark_read(sender_id, conn.user_id, now, before=before)
        await uow.commit()
    logger.debug("User %d read %d message(s) from user %d", conn.user_id, updated, sender_id)

    await ctx.unread.reset(conn.user_id, sender_id)
    await conn.send(OutboundEvent.UNREAD_UPDATE, {"from": sender_id, "count": 0})

    sender = ctx.registry.lookup(sender_id)
    if sender is not None:
        await sender.send(
            OutboundEvent.MESSAGES_READ,
            {"by": conn.user_id, "timestamp": now.isoformat()},
        )
    return updated
