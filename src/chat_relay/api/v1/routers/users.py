from __future__ import annotations

from fastapi import APIRouter

from chat_relay.api.deps import CurrentPrincipal, RealtimeDep, UoWDep
from chat_relay.api.v1.schemas.presence import OnlineUsersResponse, PresenceResponse
from chat_relay.application.exceptions import NotFoundError

router = APIRouter(prefix="/api/v1/users", tags=["presence"])


@router.get("/online", response_model=OnlineUsersResponse)
async def online_users(
    _principal: CurrentPrincipal,
    realtime: RealtimeDep,
) -> OnlineUsersResponse:
    return OnlineUsersResponse(user_ids=await realtime.registry.online_user_ids())


@router.get("/{user_id}/presence", response_model=PresenceResponse)
async def user_presence(
    user_id: int,
    _principal: CurrentPrincipal,
    uow: UoWDep,
    realtime: RealtimeDep,
) -> PresenceResponse:
    user = await uow.users.get_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return PresenceResponse(
        user_id=user.id,
        status=user.status,
        last_seen_at=user.last_seen_at,
        connected=realtime.registry.is_online(user.id),
    )
