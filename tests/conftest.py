"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from types import TracebackType
from typing import Any

import pytest

from chat_relay.application.dto.message import SendMessageDTO
from chat_relay.application.dto.principal import Principal
from chat_relay.domain.entities.message import Message
from chat_relay.domain.entities.user import User
from chat_relay.domain.value_objects.enums import UserStatus
from chat_relay.infrastructure.memory.unread_counters import UnreadCounterStore
from chat_relay.infrastructure.ws.connection import Connection
from chat_relay.infrastructure.ws.manager import ConnectionRegistry
from chat_relay.services.context import RealtimeContext

ALICE, BOB, CAROL = 1, 2, 3

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, start: datetime = T0) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float = 1) -> None:
        self.current += timedelta(seconds=seconds)


def make_user(user_id: int, username: str, *, status: UserStatus = UserStatus.OFFLINE) -> User:
    return User(
        id=user_id,
        username=username,
        display_name=username.capitalize(),
        status=status,
        last_seen_at=None,
    )


def make_message(
    *,
    message_id: int = 1,
    sender_id: int = ALICE,
    receiver_id: int = BOB,
    content: str = "hello",
    is_read: bool = False,
    created_at: datetime = T0,
) -> Message:
    return Message(
        id=message_id,
        sender_id=sender_id,
        receiver_id=receiver_id,
        content=content,
        attachment_url=None,
        attachment_type=None,
        is_read=is_read,
        read_at=created_at if is_read else None,
        created_at=created_at,
    )


@dataclass
class FakeTransport:
    """Records every frame sent to the client."""

    sent: list[dict[str, Any]] = field(default_factory=list)
    fail: bool = False
    closed: tuple[int, str] | None = None

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(json.loads(data))

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.closed = (code, reason or "")

    def events(self, event_type: str) -> list[dict[str, Any]]:
        return [frame["data"] for frame in self.sent if frame["type"] == event_type]

    def types(self) -> list[str]:
        return [frame["type"] for frame in self.sent]

    def clear(self) -> None:
        self.sent.clear()


def make_connection(user_id: int, name: str = "") -> tuple[Connection, FakeTransport]:
    transport = FakeTransport()
    principal = Principal(user_id=user_id, display_name=name or f"user{user_id}")
    return Connection(principal, transport, connection_id=f"test-{user_id}"), transport


@dataclass
class FakeUserReader:
    _users: dict[int, User] = field(default_factory=dict)

    async def get_by_id(self, user_id: int) -> User | None:
        return self._users.get(user_id)


@dataclass
class FakeUserStatusWriter:
    _reader: FakeUserReader
    fail: bool = False
    # Holds set_status for the given status until the event is set.
    gates: dict[UserStatus, asyncio.Event] = field(default_factory=dict)
    touches: list[tuple[int, datetime]] = field(default_factory=list)

    async def set_status(self, user_id: int, status: UserStatus, at: datetime) -> None:
        gate = self.gates.get(status)
        if gate is not None:
            await gate.wait()
        if self.fail:
            raise RuntimeError("db down")
        user = self._reader._users.get(user_id)
        if user is not None:
            self._reader._users[user_id] = User(
                id=user.id,
                username=user.username,
                display_name=user.display_name,
                status=status,
                last_seen_at=at,
            )

    async def touch_last_seen(self, user_id: int, at: datetime) -> None:
        if self.fail:
            raise RuntimeError("db down")
        self.touches.append((user_id, at))
        user = self._reader._users.get(user_id)
        if user is not None:
            self._reader._users[user_id] = User(
                id=user.id,
                username=user.username,
                display_name=user.display_name,
                status=user.status,
                last_seen_at=at,
            )


@dataclass
class FakeMessageReader:
    _messages: list[Message] = field(default_factory=list)
    fail: bool = False

    def _between(self, a: int, b: int) -> list[Message]:
        return [
            m for m in self._messages
            if {m.sender_id, m.receiver_id} == {a, b}
        ]

    async def get_by_id(self, message_id: int) -> Message | None:
        return next((m for m in self._messages if m.id == message_id), None)

    async def list_between(self, user_a: int, user_b: int, *, page: int = 1, limit: int = 50) -> list[Message]:
        newest_first = sorted(self._between(user_a, user_b), key=lambda m: (m.created_at, m.id), reverse=True)
        chunk = newest_first[(page - 1) * limit: page * limit]
        return list(reversed(chunk))

    async def count_between(self, user_a: int, user_b: int) -> int:
        return len(self._between(user_a, user_b))

    async def grouped_unread_counts(self, owner_id: int) -> dict[int, int]:
        if self.fail:
            raise RuntimeError("db down")
        counts: dict[int, int] = {}
        for m in self._messages:
            if m.receiver_id == owner_id and not m.is_read:
                counts[m.sender_id] = counts.get(m.sender_id, 0) + 1
        return counts


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader
    fail: bool = False
    gate: asyncio.Event | None = None
    mark_read_calls: list[tuple[int, int, datetime | None]] = field(default_factory=list)
    _next_id: int = 1

    async def create(self, data: SendMessageDTO, created_at: datetime) -> Message:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise RuntimeError("insert failed")
        msg = Message(
            id=self._next_id,
            sender_id=data.sender_id,
            receiver_id=data.receiver_id,
            content=data.content,
            attachment_url=data.attachment_url,
            attachment_type=data.attachment_type,
            is_read=False,
            read_at=None,
            created_at=created_at,
        )
        self._next_id += 1
        self._reader._messages.append(msg)
        return msg

    async def mark_read(
        self,
        sender_id: int,
        receiver_id: int,
        read_at: datetime,
        *,
        before: datetime | None = None,
    ) -> int:
        if self.fail:
            raise RuntimeError("update failed")
        self.mark_read_calls.append((sender_id, receiver_id, before))
        updated = 0
        for i, m in enumerate(self._reader._messages):
            if (
                m.sender_id == sender_id
                and m.receiver_id == receiver_id
                and not m.is_read
                and (before is None or m.created_at <= before)
            ):
                self._reader._messages[i] = Message(
                    id=m.id,
                    sender_id=m.sender_id,
                    receiver_id=m.receiver_id,
                    content=m.content,
                    attachment_url=m.attachment_url,
                    attachment_type=m.attachment_type,
                    is_read=True,
                    read_at=read_at,
                    created_at=m.created_at,
                )
                updated += 1
        return updated

    async def delete(self, message_id: int) -> None:
        self._reader._messages[:] = [m for m in self._reader._messages if m.id != message_id]


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests; also usable as its own factory."""

    users: FakeUserReader = field(default_factory=FakeUserReader)
    users_w: FakeUserStatusWriter | None = None
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    commits: int = 0
    rollbacks: int = 0

    def __post_init__(self) -> None:
        if self.users_w is None:
            self.users_w = FakeUserStatusWriter(self.users)
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1

    async def __aenter__(self) -> FakeUoW:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            await self.rollback()

    def add_users(self, *users: User) -> None:
        for user in users:
            self.users._users[user.id] = user

    def seed_messages(self, *messages: Message) -> None:
        self.messages._messages.extend(messages)
        self.messages_w._next_id = max(m.id for m in self.messages._messages) + 1


@pytest.fixture
def uow() -> FakeUoW:
    fake = FakeUoW()
    fake.add_users(make_user(ALICE, "alice"), make_user(BOB, "bob"), make_user(CAROL, "carol"))
    return fake


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def ctx(uow: FakeUoW, clock: FixedClock) -> RealtimeContext:
    return RealtimeContext(
        registry=ConnectionRegistry(),
        unread=UnreadCounterStore(),
        uow_factory=lambda: uow,
        clock=clock,
    )
