"""Route inbound deliveries to provider integrations and forward events."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Protocol, assert_never

from starlette.requests import Request

from hookline.messaging import INGEST_EVENT, MessageBroker
from hookline.triggers.webhook.errors import IngestionError, SignatureMismatch, UnsupportedSourceType
from hookline.triggers.webhook.integrations import IntegrationRegistry, ManualWebhookIntegration
from hookline.triggers.webhook.persistence import ExternalSourceModel
from hookline.triggers.webhook.request import from_starlette
from hookline.triggers.webhook.types import (
    CanonicalEvent,
    DispatchOutcome,
    HandledWebhook,
    NormalizedRequest,
    WebhookError,
    WebhookIgnored,
    WebhookOk,
)

logger = logging.getLogger(__name__)


class IngestionSink(Protocol):
    """Consumer of canonical events; raises when an event cannot be accepted."""

    async def ingest(self, event: CanonicalEvent, organization_id: str) -> None: ...


class BrokerIngestionSink:
    """Publish each canonical event on the INGEST_EVENT topic."""

    def __init__(self, broker: MessageBroker, *, topic: str = INGEST_EVENT) -> None:
        self._broker = broker
        self._topic = topic

    async def ingest(self, event: CanonicalEvent, organization_id: str) -> None:
        await self._broker.publish(self._topic, {"organization_id": organization_id, "event": asdict(event)})


class ExternalSourceDispatcher:
    """Verify one inbound delivery for an external source and forward its events.

    Named providers are looked up in the registry by service identifier. A
    service without an integration falls back to the manual variant only when
    the source was registered manually; otherwise the delivery is ignored.
    Events are forwarded one at a time in the order the integration produced
    them, and the first sink failure stops the loop.
    """

    def __init__(self, registry: IntegrationRegistry, sink: IngestionSink) -> None:
        self._registry = registry
        self._sink = sink

    async def call(
        self,
        external_source: ExternalSourceModel,
        service_identifier: str,
        request: NormalizedRequest | Request,
    ) -> DispatchOutcome:
        normalized = request if isinstance(request, NormalizedRequest) else await from_starlette(request)

        if external_source.type != "WEBHOOK":
            raise UnsupportedSourceType(str(external_source.type))

        handled = self._handle(external_source, service_identifier, normalized)
        if isinstance(handled, WebhookOk):
            forwarded = await self._forward(external_source, service_identifier, handled.events)
            return DispatchOutcome(ignored=False, forwarded=forwarded)
        if isinstance(handled, WebhookIgnored):
            logger.info(
                "ignored delivery for external source %s (%s): %s",
                external_source.id,
                service_identifier,
                handled.reason,
            )
            return DispatchOutcome(ignored=True, reason=handled.reason)
        if isinstance(handled, WebhookError):
            logger.warning(
                "rejected delivery for external source %s (%s): %s",
                external_source.id,
                service_identifier,
                handled.message,
            )
            raise SignatureMismatch(handled.message)
        assert_never(handled)

    def _handle(
        self,
        external_source: ExternalSourceModel,
        service_identifier: str,
        request: NormalizedRequest,
    ) -> HandledWebhook:
        integration = self._registry.get(service_identifier)
        if integration is not None:
            return integration.handle_webhook_request(request, secret=external_source.secret)
        if external_source.manual_registration:
            return ManualWebhookIntegration(service_identifier).handle_webhook_request(
                request,
                secret=external_source.secret,
                source=external_source.source,
                external_source_id=str(external_source.id),
            )
        return WebhookIgnored(
            reason=(
                f"Service {service_identifier} is not supported and external source "
                f"{external_source.id} is not manually registered"
            )
        )

    async def _forward(
        self,
        external_source: ExternalSourceModel,
        service_identifier: str,
        events: list[CanonicalEvent],
    ) -> int:
        forwarded = 0
        for event in events:
            event.service = service_identifier
            event.source_type = str(external_source.type)
            try:
                await self._sink.ingest(event, external_source.organization_id)
            except Exception as exc:
                raise IngestionError(event.id, forwarded, exc) from exc
            forwarded += 1
        return forwarded


def describe_outcome(outcome: DispatchOutcome) -> dict[str, Any]:
    """JSON body for a successful dispatch."""
    return {"ok": True, "ignored": outcome.ignored, "events": outcome.forwarded, "reason": outcome.reason}
