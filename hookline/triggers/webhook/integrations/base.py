"""Capability contract implemented once per provider."""

from __future__ import annotations

from typing import Any, Protocol

from hookline.triggers.webhook.types import (
    HandledWebhook,
    NormalizedRequest,
    RegistrationResult,
    WebhookRegistrationConfig,
)


class WebhookIntegration(Protocol):
    """Provider-specific key derivation, verification, and registration."""

    service: str

    def key_for_source(self, source: Any) -> str: ...

    async def register_webhook(self, config: WebhookRegistrationConfig, source: Any) -> RegistrationResult: ...

    def handle_webhook_request(self, request: NormalizedRequest, *, secret: str | None) -> HandledWebhook: ...


TRANSPORT_HEADERS = frozenset(
    {
        "content-type",
        "content-length",
        "accept",
        "accept-encoding",
        "x-forwarded-proto",
    }
)


def strip_headers(headers: Any, names: frozenset[str]) -> dict[str, str]:
    """Copy headers without the given lower-cased names."""
    return {key: value for key, value in headers.items() if key not in names}
