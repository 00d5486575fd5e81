from __future__ import annotations

from types import TracebackType
from typing import Self

from sqlalchemy.ext.asyncio import AsyncSession

from chat_relay.infrastructure.db.repositories.message import (
    MessageReaderRepo,
    MessageWriterRepo,
)
from chat_relay.infrastructure.db.repositories.user import (
    UserReaderRepo,
    UserStatusWriterRepo,
)
from chat_relay.infrastructure.db.session import AsyncSessionLocal


class SqlAlchemyUoW:
    """Concrete Unit-of-Work backed by a single AsyncSession.

    Built without a session it opens (and later closes) its own on ``__aenter__``,
    so the class itself can serve as the realtime layer's ``UoWFactory``.
    """

    def __init__(self, session: AsyncSession | None = None) -> None:
        self._owns_session = session is None
        self._session: AsyncSession | None = None
        if session is not None:
            self._bind(session)

    def _bind(self, session: AsyncSession) -> None:
        self._session = session
        self.messages = MessageReaderRepo(session)
        self.messages_w = MessageWriterRepo(session)
        self.users = UserReaderRepo(session)
        self.users_w = UserStatusWriterRepo(session)

    async def flush(self) -> None:
        assert self._session is not None
        await self._session.flush()

    async def commit(self) -> None:
        assert self._session is not None
        await self._session.commit()

    async def rollback(self) -> None:
        assert self._session is not None
        await self._session.rollback()

    async def __aenter__(self) -> Self:
        if self._session is None:
            self._bind(AsyncSessionLocal())
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        assert self._session is not None
        try:
            if exc_type is not None:
                await self.rollback()
        finally:
            if self._owns_session:
                await self._session.close()
                self._session = None
