from __future__ import annotations

from fastapi import APIRouter, Query, Response, status

from chat_relay.api.deps import CurrentPrincipal, UoWDep
from chat_relay.api.v1.schemas.message import (
    ConversationPageResponse,
    MessageResponse,
    PaginationInfo,
)
from chat_relay.services import message_service

router = APIRouter(prefix="/api/v1/messages", tags=["messages"])


@router.get("/{user_id}", response_model=ConversationPageResponse)
async def get_conversation(
    user_id: int,
    principal: CurrentPrincipal,
    uow: UoWDep,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
) -> ConversationPageResponse:
    result = await message_service.list_conversation(principal, user_id, page, limit, uow)
    return ConversationPageResponse(
        messages=[MessageResponse.model_validate(m) for m in result.messages],
        pagination=PaginationInfo(
            total=result.total,
            page=result.page,
            limit=result.limit,
            pages=result.pages,
        ),
    )


@router.delete("/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(
    message_id: int,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> Response:
    await message_service.delete_message(message_id, principal, uow)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
