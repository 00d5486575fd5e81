from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chat_relay.api.middleware.correlation_id import CorrelationIdMiddleware
from chat_relay.api.middleware.request_timing import RequestTimingMiddleware
from chat_relay.api.v1.routers import health, messages, users, ws
from chat_relay.application.exceptions import (
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from chat_relay.config import settings
from chat_relay.infrastructure.db.session import engine
from chat_relay.infrastructure.db.uow import SqlAlchemyUoW
from chat_relay.infrastructure.memory.unread_counters import UnreadCounterStore
from chat_relay.infrastructure.ws.manager import ConnectionRegistry
from chat_relay.services.context import RealtimeContext

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    logger.info("Realtime relay ready")
    yield
    await engine.dispose()
    logger.info("Database engine disposed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Chat Relay",
        version="0.1.0",
        lifespan=lifespan,
    )
    # Process-wide realtime state; rebuilt empty on every restart.
    app.state.realtime = RealtimeContext(
        registry=ConnectionRegistry(),
        unread=UnreadCounterStore(),
        uow_factory=SqlAlchemyUoW,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(messages.router)
    app.include_router(users.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(UnauthorizedError)
    async def _unauthorized(_req: Request, exc: UnauthorizedError) -> JSONResponse:
        return JSONResponse(status_code=401, content={"detail": exc.detail})

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})
