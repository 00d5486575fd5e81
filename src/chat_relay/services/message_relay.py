"""Persist a new message once and fan it out to the live participants."""
from __future__ import annotations

import logging

from chat_relay.application.dto.message import SendMessageDTO
from chat_relay.application.exceptions import UnauthorizedError, ValidationError
from chat_relay.domain.entities.message import Message
from chat_relay.infrastructure.ws.connection import Connection
from chat_relay.infrastructure.ws.protocol import OutboundEvent, message_to_wire
from chat_relay.services._store import store_operation
from chat_relay.services.context import RealtimeContext

logger = logging.getLogger(__name__)


async def relay_message(
    ctx: RealtimeContext,
    conn: Connection,
    data: SendMessageDTO,
) -> Message:
    """Store ``data`` and deliver it.

    The sender always gets the stored message back (carrying its
    ``client_msg_id``). A reachable receiver gets it too; its unread counter
    for the sender is bumped unless that conversation is open on its
    connection. An unreachable receiver only gets the counter bump.

    Raises UnauthorizedError on a spoofed sender id and StoreError when the
    write fails; in both cases nothing is emitted.
    """
    if data.sender_id != conn.user_id:
        raise UnauthorizedError("Unauthorized sender ID")
    if data.receiver_id == data.sender_id:
        raise ValidationError("Cannot send a message to yourself")

    async with store_operation(ctx, "create_message") as uow:
        message = await uow.messages_w.create(data, ctx.clock.now())
        await uow.commit()

    logger.info(
        "Message %d from user %d to user %d stored",
        message.id, message.sender_id, message.receiver_id,
    )
    payload = message_to_wire(message, data.client_msg_id)
    await conn.send(OutboundEvent.NEW_MESSAGE, payload)

    # The lookup happens after the write, so a receiver that disconnected
    # meanwhile falls through to the undelivered path below.
    receiver = ctx.registry.lookup(message.receiver_id)
    delivered = False
    if receiver is not None:
        delivered = await receiver.send(OutboundEvent.NEW_MESSAGE, payload)
        if delivered and receiver.active_chat == message.sender_id:
            return message

    count = await ctx.unread.increment(message.receiver_id, message.sender_id)
    if delivered and receiver is not None:
        await receiver.send(
            OutboundEvent.UNREAD_UPDATE,
            {"from": message.sender_id, "count": count},
        )
    else:
        logger.debug(
            "User %d unreachable, unread from %d now %d",
            message.receiver_id, message.sender_id, count,
        )
    return message
