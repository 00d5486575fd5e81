from __future__ import annotations

from datetime import datetime

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from chat_relay.application.dto.message import SendMessageDTO
from chat_relay.domain.entities.message import Message
from chat_relay.infrastructure.db.mappers import message as mapper
from chat_relay.infrastructure.db.models.message import MessageModel


def _between(user_a: int, user_b: int):
    return or_(
        and_(MessageModel.sender_id == user_a, MessageModel.receiver_id == user_b),
        and_(MessageModel.sender_id == user_b, MessageModel.receiver_id == user_a),
    )


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, message_id: int) -> Message | None:
        model = await self._session.get(MessageModel, message_id)
        return mapper.model_to_entity(model) if model else None

    async def list_between(
        self,
        user_a: int,
        user_b: int,
        *,
        page: int = 1,
        limit: int = 50,
    ) -> list[Message]:
        # Page 1 is the newest slice; rows are flipped back to chronological order.
        stmt = (
            select(MessageModel)
            .where(_between(user_a, user_b))
            .order_by(MessageModel.created_at.desc(), MessageModel.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        rows = [mapper.model_to_entity(m) for m in result.scalars().all()]
        rows.reverse()
        return rows

    async def count_between(self, user_a: int, user_b: int) -> int:
        stmt = select(func.count(MessageModel.id)).where(_between(user_a, user_b))
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def grouped_unread_counts(self, owner_id: int) -> dict[int, int]:
        stmt = (
            select(MessageModel.sender_id, func.count(MessageModel.id))
            .where(
                MessageModel.receiver_id == owner_id,
                MessageModel.is_read.is_(False),
            )
            .group_by(MessageModel.sender_id)
        )
        result = await self._session.execute(stmt)
        return {sender_id: int(count) for sender_id, count in result.all()}


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, data: SendMessageDTO, created_at: datetime) -> Message:
        model = MessageModel(
            sender_id=data.sender_id,
            receiver_id=data.receiver_id,
            content=data.content,
            attachment_url=data.attachment_url,
            attachment_type=data.attachment_type,
            is_read=False,
            read_at=None,
            created_at=created_at,
        )
        self._session.add(model)
        await self._session.flush()
        return mapper.model_to_entity(model)

    async def mark_read(
        self,
        sender_id: int,
        receiver_id: int,
        read_at: datetime,
        *,
        before: datetime | None = None,
    ) -> int:
        stmt = (
            update(MessageModel)
            .where(
                MessageModel.sender_id == sender_id,
                MessageModel.receiver_id == receiver_id,
                MessageModel.is_read.is_(False),
            )
            .values(is_read=True, read_at=read_at)
        )
        if before is not None:
            stmt = stmt.where(MessageModel.created_at <= before)
        result = await self._session.execute(stmt)
        return result.rowcount or 0

    async def delete(self, message_id: int) -> None:
        await self._session.execute(delete(MessageModel).where(MessageModel.id == message_id))
