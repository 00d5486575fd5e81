from __future__ import annotations

from chat_relay.application.dto.principal import Principal
from chat_relay.application.exceptions import StaleAuthError
from chat_relay.application.uow import UnitOfWork


async def resolve_identity(claimed: Principal, uow: UnitOfWork) -> Principal:
    """Bind a verified token subject to the stored user, refusing deleted accounts."""
    user = await uow.users.get_by_id(claimed.user_id)
    if user is None:
        raise StaleAuthError(f"User {claimed.user_id} not found")
    return Principal(user_id=user.id, display_name=user.name)
