from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from chat_relay.application.exceptions import AppError, StoreError
from chat_relay.application.uow import UnitOfWork
from chat_relay.services.context import RealtimeContext


@asynccontextmanager
async def store_operation(ctx: RealtimeContext, operation: str) -> AsyncIterator[UnitOfWork]:
    """Open a unit of work; any non-application failure surfaces as StoreError."""
    try:
        async with ctx.uow_factory() as uow:
            yield uow
    except AppError:
        raise
    except Exception as exc:
        raise StoreError(f"{operation} failed") from exc
