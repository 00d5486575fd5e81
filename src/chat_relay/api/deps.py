"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated, AsyncIterator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from chat_relay.application.dto.principal import Principal
from chat_relay.application.ports.auth import TokenVerifier
from chat_relay.application.uow import UnitOfWork
from chat_relay.config import settings
from chat_relay.infrastructure.auth.hs256_verifier import HS256Verifier
from chat_relay.infrastructure.auth.jwks_verifier import JWKSVerifier
from chat_relay.infrastructure.db.session import AsyncSessionLocal
from chat_relay.infrastructure.db.uow import SqlAlchemyUoW
from chat_relay.services.context import RealtimeContext

_bearer_scheme = HTTPBearer()


async def get_uow() -> AsyncIterator[UnitOfWork]:
    async with AsyncSessionLocal() as session:
        async with SqlAlchemyUoW(session) as uow:
            yield uow


UoWDep = Annotated[UnitOfWork, Depends(get_uow)]


def _get_verifier() -> TokenVerifier:
    if settings.JWT_VERIFY_MODE == "jwks":
        assert settings.JWKS_URL, "JWKS_URL must be set when JWT_VERIFY_MODE=jwks"
        return JWKSVerifier(settings.JWKS_URL)
    return HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = _get_verifier()
    return _verifier


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
) -> Principal:
    verifier = get_verifier()
    try:
        return await verifier.verify(credentials.credentials)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


def get_realtime_context(request: Request) -> RealtimeContext:
    return request.app.state.realtime


RealtimeDep = Annotated[RealtimeContext, Depends(get_realtime_context)]
