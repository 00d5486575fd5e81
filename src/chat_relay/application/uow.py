from __future__ import annotations

from types import TracebackType
from typing import Callable, Protocol, Self

from chat_relay.application.repositories.message import MessageReader, MessageWriter
from chat_relay.application.repositories.user import UserReader, UserStatusWriter


class UnitOfWork(Protocol):
    messages: MessageReader
    messages_w: MessageWriter
    users: UserReader
    users_w: UserStatusWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...

    async def __aenter__(self) -> Self: ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None: ...


# Opens a fresh unit of work; used as ``async with uow_factory() as uow``.
UoWFactory = Callable[[], UnitOfWork]
