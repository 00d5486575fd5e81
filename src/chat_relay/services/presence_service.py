"""Online/offline tracking and presence broadcasts."""
from __future__ import annotations

import logging

from chat_relay.application.exceptions import StoreError
from chat_relay.domain.value_objects.enums import UserStatus
from chat_relay.infrastructure.ws.connection import SUPERSEDED_CLOSE_CODE, Connection
from chat_relay.infrastructure.ws.protocol import OutboundEvent
from chat_relay.services import unread_service
from chat_relay.services._store import store_operation
from chat_relay.services.context import RealtimeContext

logger = logging.getLogger(__name__)


async def connect(ctx: RealtimeContext, conn: Connection) -> None:
    """Bring a freshly authenticated connection online.

    Registration happens before the ONLINE write, so a displaced connection's
    disconnect running meanwhile finds itself superseded and writes nothing.
    """
    replaced = await ctx.registry.register(conn)
    if replaced is not None:
        await replaced.close(SUPERSEDED_CLOSE_CODE, "Superseded by a newer connection")
    await _set_status(ctx, conn.user_id, UserStatus.ONLINE)
    logger.info("User %d (%s) is now ONLINE", conn.user_id, conn.principal.display_name)
    await broadcast_presence(ctx)
    try:
        await unread_service.get_unread_counts(ctx, conn)
    except StoreError:
        logger.warning("Initial unread reconciliation failed for user %d", conn.user_id, exc_info=True)


async def disconnect(ctx: RealtimeContext, conn: Connection) -> None:
    """Take a connection offline. Safe to call more than once."""
    conn.mark_closed()
    if not await ctx.registry.unregister(conn):
        logger.debug("%s already unregistered or superseded", conn.connection_id)
        return
    await _set_status(ctx, conn.user_id, UserStatus.OFFLINE)
    if ctx.registry.lookup(conn.user_id) is not None:
        # A new session registered while OFFLINE was being written.
        await _set_status(ctx, conn.user_id, UserStatus.ONLINE)
    else:
        logger.info("User %d (%s) is now OFFLINE", conn.user_id, conn.principal.display_name)
    await broadcast_presence(ctx)


async def broadcast_presence(ctx: RealtimeContext) -> list[int]:
    """Send the full online list to every connection.

    Ids and recipients come from one registry snapshot, so the list every
    client receives is exactly the set of registered users at that moment.
    """
    online = await ctx.registry.snapshot()
    user_ids = sorted(online)
    await ctx.registry.broadcast(
        OutboundEvent.PRESENCE_LIST,
        {"user_ids": user_ids},
        targets=online.values(),
    )
    logger.debug("Broadcast online users: %s", user_ids)
    return user_ids


async def send_presence(ctx: RealtimeContext, conn: Connection) -> None:
    user_ids = await ctx.registry.online_user_ids()
    await conn.send(OutboundEvent.PRESENCE_LIST, {"user_ids": user_ids})


async def touch_activity(ctx: RealtimeContext, conn: Connection) -> None:
    try:
        async with store_operation(ctx, "touch_last_seen") as uow:
            await uow.users_w.touch_last_seen(conn.user_id, ctx.clock.now())
            await uow.commit()
    except StoreError:
        logger.warning("Failed to refresh last seen for user %d", conn.user_id, exc_info=True)


async def relay_typing(
    ctx: RealtimeContext,
    conn: Connection,
    receiver_id: int,
    is_typing: bool,
) -> None:
    receiver = ctx.registry.lookup(receiver_id)
    if receiver is None:
        return
    await receiver.send(
        OutboundEvent.USER_TYPING,
        {"from": conn.user_id, "is_typing": is_typing},
    )


async def _set_status(ctx: RealtimeContext, user_id: int, status: UserStatus) -> None:
    # Status writes are best effort; a failed write never blocks the session.
    try:
        async with store_operation(ctx, "set_user_status") as uow:
            await uow.users_w.set_status(user_id, status, ctx.clock.now())
            await uow.commit()
    except StoreError:
        logger.warning("Failed to set user %d %s", user_id, status, exc_info=True)
