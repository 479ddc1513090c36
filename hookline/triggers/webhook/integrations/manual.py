"""Generic webhook handling for services without a dedicated integration."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError
from ulid import ULID

from hookline.triggers.webhook.errors import InvalidSource
from hookline.triggers.webhook.schemas import ManualWebhookSource, describe_validation_error
from hookline.triggers.webhook.signature import verify_signature
from hookline.triggers.webhook.types import (
    CanonicalEvent,
    HandledWebhook,
    NormalizedRequest,
    RegistrationError,
    RegistrationResult,
    WebhookError,
    WebhookOk,
    WebhookRegistrationConfig,
)


def parse_manual_source(service: str, source: Any) -> ManualWebhookSource:
    """Validate a manual source document or raise InvalidSource."""
    try:
        return ManualWebhookSource.model_validate(source)
    except ValidationError as exc:
        raise InvalidSource(service, describe_validation_error(exc)) from exc


class ManualWebhookIntegration:
    """Verify with the source's own header rules and emit one event per request."""

    def __init__(self, service: str) -> None:
        self.service = service

    def key_for_source(self, source: Any) -> str:  # noqa: ARG002
        """Return the service identifier whatever the source document holds.

        Every manual workflow for one service in an organization therefore shares
        a single external source, and the most recent deployment's document
        replaces the stored one. The document is only validated on delivery.
        """
        return self.service

    async def register_webhook(self, config: WebhookRegistrationConfig, source: Any) -> RegistrationResult:  # noqa: ARG002
        return RegistrationResult(
            ok=False,
            error=RegistrationError(message=f"{self.service} webhooks are registered manually at the provider"),
        )

    def handle_webhook_request(
        self,
        request: NormalizedRequest,
        *,
        secret: str | None,
        source: Any = None,
        external_source_id: str | None = None,
    ) -> HandledWebhook:
        try:
            parsed = parse_manual_source(self.service, source)
        except InvalidSource as exc:
            return WebhookError(message=str(exc))

        verify = parsed.verify_payload
        if verify.enabled:
            assert verify.header is not None
            if not secret:
                return WebhookError(message="Payload signature could not be verified: no secret configured")
            if not verify_signature(secret, request.raw_body, request.header(verify.header, "")):
                return WebhookError(message="Payload signature did not match")

        return WebhookOk(
            events=[
                CanonicalEvent(
                    id=str(ULID()),
                    payload=request.body,
                    name=parsed.event,
                    context={"headers": dict(request.headers), "externalSourceId": external_source_id},
                )
            ]
        )
