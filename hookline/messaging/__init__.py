"""Message broker contracts and the in-memory broker."""

from hookline.messaging.broker import (
    EXTERNAL_SOURCE_UPSERTED,
    INGEST_EVENT,
    MessageBroker,
    MessageHandler,
    PublishedMessage,
)
from hookline.messaging.memory import InMemoryMessageBroker

__all__ = [
    "EXTERNAL_SOURCE_UPSERTED",
    "INGEST_EVENT",
    "InMemoryMessageBroker",
    "MessageBroker",
    "MessageHandler",
    "PublishedMessage",
]
