"""Broker protocol shared by publishers and subscribers."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

EXTERNAL_SOURCE_UPSERTED = "EXTERNAL_SOURCE_UPSERTED"
INGEST_EVENT = "INGEST_EVENT"

MessageHandler = Callable[[dict[str, Any]], Awaitable[None]]


@dataclass(slots=True)
class PublishedMessage:
    """One message accepted by a broker."""

    topic: str
    payload: dict[str, Any]
    deliver_after: float | None = None
    published_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class MessageBroker(Protocol):
    """Abstract publish/subscribe broker with delayed delivery."""

    async def publish(self, topic: str, payload: dict[str, Any], *, deliver_after: float | None = None) -> None:
        """Accept a message; delivery happens no sooner than deliver_after seconds."""

    def subscribe(self, topic: str, handler: MessageHandler) -> None:
        """Register a handler for every message on topic."""
