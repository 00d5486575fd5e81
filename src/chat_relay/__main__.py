"""Entrypoint: python -m chat_relay"""
from __future__ import annotations

import logging

import uvicorn

from chat_relay.api.middleware.correlation_id import CorrelationIdFilter
from chat_relay.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(correlation_id)s]: %(message)s"


def configure_logging() -> None:
    logging.basicConfig(level=settings.LOG_LEVEL.upper(), format=LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        handler.addFilter(CorrelationIdFilter())


def main() -> None:
    configure_logging()
    uvicorn.run(
        "chat_relay.app:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
