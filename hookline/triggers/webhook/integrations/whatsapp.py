"""WhatsApp Business Account webhooks."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError
from ulid import ULID

from hookline.triggers.webhook.errors import InvalidSource, ProviderAPIError
from hookline.triggers.webhook.integrations.base import TRANSPORT_HEADERS, strip_headers
from hookline.triggers.webhook.registration import ProviderApiClient
from hookline.triggers.webhook.schemas import WhatsAppSource, describe_validation_error
from hookline.triggers.webhook.signature import verify_signature
from hookline.triggers.webhook.types import (
    CanonicalEvent,
    HandledWebhook,
    NormalizedRequest,
    RegistrationError,
    RegistrationResult,
    WebhookError,
    WebhookIgnored,
    WebhookOk,
    WebhookRegistrationConfig,
)

SIGNATURE_HEADER = "x-hub-signature-256"
DEFAULT_EVENT = "messages"

_CONTEXT_EXCLUDED = TRANSPORT_HEADERS | {SIGNATURE_HEADER}


class WhatsAppWebhookIntegration:
    """Webhook integration for the WhatsApp Cloud API.

    Deliveries carry no delivery id header, so every accepted request gets a
    fresh ULID. The event name is the `field` of the first change entry.
    """

    service = "whatsapp"

    def __init__(self, client: ProviderApiClient, *, graph_base_url: str = "https://graph.facebook.com/v17.0") -> None:
        self._client = client
        self._graph_base_url = graph_base_url.rstrip("/")

    def key_for_source(self, source: Any) -> str:
        return f"account.{_parse_source(source).account_id}"

    async def register_webhook(self, config: WebhookRegistrationConfig, source: Any) -> RegistrationResult:
        parsed = _parse_source(source)
        try:
            data = await self._client.post_json(
                f"{self._graph_base_url}/{parsed.account_id}/subscribed_apps",
                access_token=config.access_token,
                json={"override_callback_uri": config.callback_url, "verify_token": config.secret},
            )
        except ProviderAPIError as exc:
            return RegistrationResult(
                ok=False,
                error=RegistrationError(
                    message=f"Failed to register webhook: {exc.status_text}",
                    status_code=exc.status_code,
                ),
            )
        return RegistrationResult(ok=True, data=data)

    def handle_webhook_request(self, request: NormalizedRequest, *, secret: str | None) -> HandledWebhook:
        signature = request.header(SIGNATURE_HEADER)
        if secret and signature:
            if not verify_signature(secret, request.raw_body, signature, prefix="sha256="):
                return WebhookError(
                    message="WhatsAppWebhookIntegration: Could not verify webhook payload, invalid signature or secret."
                )
        if not isinstance(request.body, dict):
            return WebhookIgnored(reason="whatsapp delivery body is not a JSON object")
        return WebhookOk(
            events=[
                CanonicalEvent(
                    id=str(ULID()),
                    payload=request.body,
                    name=_event_name(request.body),
                    context=strip_headers(request.headers, _CONTEXT_EXCLUDED),
                )
            ]
        )


def _event_name(body: dict[str, Any]) -> str:
    entries = body.get("entry")
    if not isinstance(entries, list) or not entries or not isinstance(entries[0], dict):
        return DEFAULT_EVENT
    changes = entries[0].get("changes")
    if not isinstance(changes, list) or not changes or not isinstance(changes[0], dict):
        return DEFAULT_EVENT
    field = changes[0].get("field")
    return field if isinstance(field, str) and field else DEFAULT_EVENT


def _parse_source(source: Any) -> WhatsAppSource:
    try:
        return WhatsAppSource.model_validate(source)
    except ValidationError as exc:
        raise InvalidSource("whatsapp", describe_validation_error(exc)) from exc
