from __future__ import annotations

from datetime import datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from chat_relay.domain.entities.user import User
from chat_relay.domain.value_objects.enums import UserStatus
from chat_relay.infrastructure.db.mappers import user as mapper
from chat_relay.infrastructure.db.models.user import UserModel


class UserReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: int) -> User | None:
        model = await self._session.get(UserModel, user_id)
        return mapper.model_to_entity(model) if model else None


class UserStatusWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def set_status(self, user_id: int, status: UserStatus, at: datetime) -> None:
        stmt = (
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(status=status.value, last_seen_at=at)
        )
        await self._session.execute(stmt)

    async def touch_last_seen(self, user_id: int, at: datetime) -> None:
        stmt = update(UserModel).where(UserModel.id == user_id).values(last_seen_at=at)
        await self._session.execute(stmt)
