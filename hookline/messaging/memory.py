"""In-memory broker for local runs, tests and CI."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from hookline.messaging.broker import MessageHandler, PublishedMessage

logger = logging.getLogger(__name__)


class InMemoryMessageBroker:
    """Deliver published messages to local subscribers in background tasks."""

    def __init__(self, *, sleeper: Callable[[float], Awaitable[Any]] = asyncio.sleep) -> None:
        self._sleeper = sleeper
        self._handlers: dict[str, list[MessageHandler]] = {}
        self._published: list[PublishedMessage] = []
        self._pending: set[asyncio.Task[None]] = set()
        self._closed = False

    async def publish(self, topic: str, payload: dict[str, Any], *, deliver_after: float | None = None) -> None:
        if self._closed:
            raise RuntimeError("broker is closed")
        message = PublishedMessage(topic=topic, payload=dict(payload), deliver_after=deliver_after)
        self._published.append(message)
        for handler in self._handlers.get(topic, []):
            task = asyncio.create_task(self._deliver(handler, message))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    def subscribe(self, topic: str, handler: MessageHandler) -> None:
        self._handlers.setdefault(topic, []).append(handler)

    async def drain(self) -> None:
        """Wait until every scheduled delivery has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        self._closed = True
        for task in list(self._pending):
            task.cancel()
        await asyncio.gather(*list(self._pending), return_exceptions=True)
        self._pending.clear()

    def get_published(self, topic: str | None = None) -> list[PublishedMessage]:
        if topic is None:
            return list(self._published)
        return [item for item in self._published if item.topic == topic]

    async def _deliver(self, handler: MessageHandler, message: PublishedMessage) -> None:
        if message.deliver_after:
            await self._sleeper(message.deliver_after)
        try:
            await handler(dict(message.payload))
        except Exception:
            logger.exception("handler for topic %s failed", message.topic)
