from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError

from chat_relay.api.deps import get_verifier
from chat_relay.api.middleware.correlation_id import correlation_id_ctx
from chat_relay.application.dto.message import SendMessageDTO
from chat_relay.application.dto.principal import Principal
from chat_relay.application.exceptions import AppError
from chat_relay.config import settings
from chat_relay.infrastructure.ws.connection import Connection
from chat_relay.infrastructure.ws.protocol import (
    CallPayload,
    ChatOpenPayload,
    IceCandidatePayload,
    InboundEvent,
    MarkAsReadPayload,
    OutboundEvent,
    SendMessagePayload,
    TypingPayload,
    WsInbound,
)
from chat_relay.services import (
    auth_service,
    call_signaling,
    message_relay,
    presence_service,
    read_receipt_service,
    unread_service,
)
from chat_relay.services.context import RealtimeContext

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

AUTH_FAILED_CLOSE_CODE = 4001

Handler = Callable[[RealtimeContext, Connection, dict[str, Any]], Awaitable[None]]


async def _authenticate(ctx: RealtimeContext, token: str) -> Principal | None:
    try:
        claimed = await get_verifier().verify(token)
        async with ctx.uow_factory() as uow:
            return await auth_service.resolve_identity(claimed, uow)
    except Exception:
        logger.warning("WS auth failed", exc_info=True)
        return None


@router.websocket("/ws/chat")
async def ws_chat(
    websocket: WebSocket,
    token: str = Query(...),
) -> None:
    ctx: RealtimeContext = websocket.app.state.realtime
    principal = await _authenticate(ctx, token)
    if principal is None:
        await websocket.close(code=AUTH_FAILED_CLOSE_CODE, reason="Authentication failed")
        return

    await websocket.accept()
    conn = Connection(principal, websocket)
    cid_token = correlation_id_ctx.set(conn.connection_id)
    logger.info("WS connected: user %d as %s", conn.user_id, conn.connection_id)

    heartbeat_task = asyncio.create_task(
        _heartbeat(conn), name=f"ws-heartbeat-{conn.connection_id}",
    )
    try:
        await presence_service.connect(ctx, conn)
        await _read_loop(ctx, websocket, conn)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for user %d", conn.user_id)
    finally:
        heartbeat_task.cancel()
        await presence_service.disconnect(ctx, conn)
        logger.info("WS disconnected: user %d", conn.user_id)
        correlation_id_ctx.reset(cid_token)


async def _heartbeat(conn: Connection) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    while True:
        await asyncio.sleep(interval)
        if not await conn.send(OutboundEvent.PONG, {}):
            return


async def _read_loop(ctx: RealtimeContext, ws: WebSocket, conn: Connection) -> None:
    # Each event is fully handled before the next frame is read.
    while True:
        raw = await ws.receive_text()
        if not conn.is_open:
            return
        try:
            msg = WsInbound.model_validate_json(raw)
        except PydanticValidationError:
            await conn.send(OutboundEvent.ERROR, {"code": "invalid_payload"})
            continue
        await _dispatch(ctx, conn, msg)


async def _dispatch(ctx: RealtimeContext, conn: Connection, msg: WsInbound) -> None:
    handler = _HANDLERS.get(msg.type)
    if handler is None:
        await conn.send(OutboundEvent.ERROR, {"code": "unknown_type", "type": msg.type})
        return
    try:
        await handler(ctx, conn, msg.data)
    except PydanticValidationError as exc:
        await conn.send(
            OutboundEvent.ERROR,
            {
                "code": "invalid_data",
                "event": msg.type,
                "detail": exc.errors(include_url=False, include_context=False),
            },
        )
    except AppError as exc:
        logger.warning("%s rejected for user %d: %s", msg.type, conn.user_id, exc.detail)
        await conn.send(
            OutboundEvent.ERROR,
            {"code": exc.code, "event": msg.type, "detail": exc.detail},
        )
    except Exception:
        logger.exception("Unhandled error in %s for user %d", msg.type, conn.user_id)
        await conn.send(OutboundEvent.ERROR, {"code": "internal_error", "event": msg.type})


async def _on_ping(ctx: RealtimeContext, conn: Connection, data: dict[str, Any]) -> None:
    await conn.send(OutboundEvent.PONG, {})


async def _on_activity(ctx: RealtimeContext, conn: Connection, data: dict[str, Any]) -> None:
    await presence_service.touch_activity(ctx, conn)


async def _on_get_presence(ctx: RealtimeContext, conn: Connection, data: dict[str, Any]) -> None:
    await presence_service.send_presence(ctx, conn)


async def _on_send_message(ctx: RealtimeContext, conn: Connection, data: dict[str, Any]) -> None:
    payload = SendMessagePayload.model_validate(data)
    await message_relay.relay_message(
        ctx,
        conn,
        SendMessageDTO(
            sender_id=payload.sender_id,
            receiver_id=payload.receiver_id,
            content=payload.content,
            attachment_url=payload.attachment_url,
            attachment_type=payload.attachment_type,
            client_msg_id=payload.client_msg_id,
        ),
    )


async def _on_mark_as_read(ctx: RealtimeContext, conn: Connection, data: dict[str, Any]) -> None:
    payload = MarkAsReadPayload.model_validate(data)
    await read_receipt_service.mark_as_read(
        ctx, conn, payload.sender_id, payload.before_timestamp,
    )


async def _on_chat_open(ctx: RealtimeContext, conn: Connection, data: dict[str, Any]) -> None:
    payload = ChatOpenPayload.model_validate(data)
    await read_receipt_service.open_chat(ctx, conn, payload.owner_id, payload.with_id)


async def _on_chat_close(ctx: RealtimeContext, conn: Connection, data: dict[str, Any]) -> None:
    read_receipt_service.close_chat(conn)


async def _on_get_unread(ctx: RealtimeContext, conn: Connection, data: dict[str, Any]) -> None:
    await unread_service.get_unread_counts(ctx, conn)


async def _on_typing(ctx: RealtimeContext, conn: Connection, data: dict[str, Any]) -> None:
    payload = TypingPayload.model_validate(data)
    await presence_service.relay_typing(ctx, conn, payload.receiver_id, payload.is_typing)


async def _on_call_user(ctx: RealtimeContext, conn: Connection, data: dict[str, Any]) -> None:
    payload = CallPayload.model_validate(data)
    await call_signaling.call_user(ctx, conn, payload.to, payload.signal, payload.from_)


async def _on_accept_call(ctx: RealtimeContext, conn: Connection, data: dict[str, Any]) -> None:
    payload = CallPayload.model_validate(data)
    await call_signaling.accept_call(ctx, conn, payload.to, payload.signal)


async def _on_reject_call(ctx: RealtimeContext, conn: Connection, data: dict[str, Any]) -> None:
    payload = CallPayload.model_validate(data)
    await call_signaling.reject_call(ctx, conn, payload.to)


async def _on_end_call(ctx: RealtimeContext, conn: Connection, data: dict[str, Any]) -> None:
    payload = CallPayload.model_validate(data)
    await call_signaling.end_call(ctx, conn, payload.to)


async def _on_ice_candidate(ctx: RealtimeContext, conn: Connection, data: dict[str, Any]) -> None:
    payload = IceCandidatePayload.model_validate(data)
    await call_signaling.relay_ice_candidate(ctx, conn, payload.to, payload.candidate)


_HANDLERS: dict[str, Handler] = {
    InboundEvent.PING: _on_ping,
    InboundEvent.ACTIVITY_PING: _on_activity,
    InboundEvent.GET_PRESENCE: _on_get_presence,
    InboundEvent.SEND_MESSAGE: _on_send_message,
    InboundEvent.MARK_AS_READ: _on_mark_as_read,
    InboundEvent.CHAT_OPEN: _on_chat_open,
    InboundEvent.CHAT_CLOSE: _on_chat_close,
    InboundEvent.GET_UNREAD_COUNTS: _on_get_unread,
    InboundEvent.TYPING: _on_typing,
    InboundEvent.CALL_USER: _on_call_user,
    InboundEvent.ACCEPT_CALL: _on_accept_call,
    InboundEvent.REJECT_CALL: _on_reject_call,
    InboundEvent.END_CALL: _on_end_call,
    InboundEvent.ICE_CANDIDATE: _on_ice_candidate,
}
