from __future__ import annotations

from chat_relay.application.dto.message import MessagePage
from chat_relay.application.dto.principal import Principal
from chat_relay.application.exceptions import ForbiddenError, NotFoundError
from chat_relay.application.uow import UnitOfWork


async def list_conversation(
    principal: Principal,
    other_user_id: int,
    page: int,
    limit: int,
    uow: UnitOfWork,
) -> MessagePage:
    total = await uow.messages.count_between(principal.user_id, other_user_id)
    messages = await uow.messages.list_between(
        principal.user_id, other_user_id, page=page, limit=limit,
    )
    return MessagePage(messages=messages, total=total, page=page, limit=limit)


async def delete_message(
    message_id: int,
    principal: Principal,
    uow: UnitOfWork,
) -> None:
    """Delete a message. Only its author may do so."""
    message = await uow.messages.get_by_id(message_id)
    if message is None:
        raise NotFoundError("Message not found")
    if message.sender_id != principal.user_id:
        raise ForbiddenError("Only the author can delete a message")
    await uow.messages_w.delete(message_id)
    await uow.commit()
