from __future__ import annotations

from dataclasses import dataclass, field

from chat_relay.application.ports.clock import Clock, SystemClock
from chat_relay.application.uow import UoWFactory
from chat_relay.infrastructure.memory.unread_counters import UnreadCounterStore
from chat_relay.infrastructure.ws.manager import ConnectionRegistry


@dataclass(slots=True)
class RealtimeContext:
    """Shared collaborators handed to every realtime handler."""

    registry: ConnectionRegistry
    unread: UnreadCounterStore
    uow_factory: UoWFactory
    clock: Clock = field(default_factory=SystemClock)
