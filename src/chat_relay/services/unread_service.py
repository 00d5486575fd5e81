from __future__ import annotations

from chat_relay.infrastructure.ws.connection import Connection
from chat_relay.infrastructure.ws.protocol import OutboundEvent
from chat_relay.services._store import store_operation
from chat_relay.services.context import RealtimeContext


async def get_unread_counts(ctx: RealtimeContext, conn: Connection) -> dict[int, int]:
    """Reconcile the caller's counters from the store and send the full map."""
    async with store_operation(ctx, "grouped_unread_counts") as uow:
        counts = await ctx.unread.reconcile_from_store(conn.user_id, uow.messages)
    await conn.send(
        OutboundEvent.UNREAD_COUNTS,
        {"counts": {str(sender_id): count for sender_id, count in counts.items()}},
    )
    return counts
