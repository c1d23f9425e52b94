"""Async worker for the shipping domain (PROTEAN_ENV=production).

The Engine drains the outbox to Redis Streams and feeds subscribers from
them: the daily delivery stats projector, and the handler that cancels open
tasks when the ordering context reports an order cancellation.

Usage:
    PROTEAN_ENV=production python src/server.py
"""

import asyncio

import structlog
from protean.server.engine import Engine

logger = structlog.get_logger(__name__)


async def run() -> None:
    from shipping.domain import shipping

    shipping.init()
    logger.info("Starting shipping engine", domain=shipping.name)
    await Engine(shipping).run()


if __name__ == "__main__":
    asyncio.run(run())
