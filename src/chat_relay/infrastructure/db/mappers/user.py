from __future__ import annotations

from chat_relay.domain.entities.user import User
from chat_relay.domain.value_objects.enums import UserStatus
from chat_relay.infrastructure.db.models.user import UserModel


def model_to_entity(model: UserModel) -> User:
    return User(
        id=model.id,
        username=model.username,
        display_name=model.display_name,
        status=UserStatus(model.status),
        last_seen_at=model.last_seen_at,
    )
