"""Create tables and seed two users with a short unread conversation."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from chat_relay.application.dto.message import SendMessageDTO
from chat_relay.infrastructure.db.base import Base
from chat_relay.infrastructure.db.models import UserModel
from chat_relay.infrastructure.db.session import AsyncSessionLocal, engine
from chat_relay.infrastructure.db.uow import SqlAlchemyUoW

logger = logging.getLogger(__name__)


async def seed() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        uow = SqlAlchemyUoW(session)
        session.add_all([
            UserModel(id=1, username="alice", display_name="Alice"),
            UserModel(id=2, username="bob", display_name="Bob"),
        ])
        await uow.flush()

        start = datetime.now(timezone.utc) - timedelta(minutes=5)
        conversation = [
            (1, 2, "Hi Bob!"),
            (2, 1, "Hey Alice, what's up?"),
            (1, 2, "Got a minute for a quick call?"),
        ]
        for i, (sender_id, receiver_id, content) in enumerate(conversation):
            await uow.messages_w.create(
                SendMessageDTO(sender_id=sender_id, receiver_id=receiver_id, content=content),
                start + timedelta(seconds=30 * i),
            )

        await uow.commit()
        logger.info("Seeded 2 users and %d messages", len(conversation))


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed())


if __name__ == "__main__":
    main()
