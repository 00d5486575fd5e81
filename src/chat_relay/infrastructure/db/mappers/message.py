from __future__ import annotations

from chat_relay.domain.entities.message import Message
from chat_relay.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        sender_id=model.sender_id,
        receiver_id=model.receiver_id,
        content=model.content,
        attachment_url=model.attachment_url,
        attachment_type=model.attachment_type,
        is_read=model.is_read,
        read_at=model.read_at,
        created_at=model.created_at,
    )
