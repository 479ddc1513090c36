"""Background registration of external sources with their providers."""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from hookline.config.models import RegistrationConfig
from hookline.messaging import EXTERNAL_SOURCE_UPSERTED, MessageBroker
from hookline.triggers.webhook.integrations import IntegrationRegistry
from hookline.triggers.webhook.persistence import (
    ConnectionRepository,
    ExternalSourceRepository,
    WorkflowRepository,
)
from hookline.triggers.webhook.types import RegistrationResult, WebhookRegistrationConfig

logger = logging.getLogger(__name__)


class ExternalSourceRegistrationWorker:
    """Create the provider-side webhook for a freshly upserted external source.

    A successful registration marks the source CONNECTED and advances its
    workflows to READY. A failed one marks it ERRORED; retrying is left to
    whoever redelivers the notification.
    """

    def __init__(
        self,
        *,
        external_sources: ExternalSourceRepository,
        connections: ConnectionRepository,
        workflows: WorkflowRepository,
        registry: IntegrationRegistry,
        config: RegistrationConfig | None = None,
    ) -> None:
        self._external_sources = external_sources
        self._connections = connections
        self._workflows = workflows
        self._registry = registry
        self._config = config or RegistrationConfig()

    def subscribe(self, broker: MessageBroker) -> None:
        broker.subscribe(EXTERNAL_SOURCE_UPSERTED, self.handle_message)

    async def handle_message(self, payload: dict[str, Any]) -> None:
        raw_id = payload.get("id")
        try:
            source_id = UUID(str(raw_id))
        except ValueError:
            logger.warning("ignoring %s message with invalid id %r", EXTERNAL_SOURCE_UPSERTED, raw_id)
            return
        await self.register(source_id)

    def callback_url(self, service: str, source_id: UUID) -> str:
        base = self._config.callback_base_url.rstrip("/")
        return f"{base}/api/v1/webhooks/{service}/{source_id}"

    async def register(self, source_id: UUID) -> RegistrationResult | None:
        """Register one source; returns None when there was nothing to do."""
        external_source = await self._external_sources.get(source_id)
        if external_source is None:
            logger.warning("external source %s no longer exists", source_id)
            return None
        if external_source.manual_registration:
            logger.info("external source %s is registered manually, skipping", source_id)
            return None
        if external_source.status == "CONNECTED":
            logger.debug("external source %s is already connected", source_id)
            return None
        integration = self._registry.get(external_source.service)
        if integration is None:
            logger.info("no integration for service %s, skipping %s", external_source.service, source_id)
            return None
        if external_source.connection_id is None:
            logger.info("external source %s has no provider connection yet", source_id)
            return None
        connection = await self._connections.get(external_source.connection_id)
        if connection is None or not connection.access_token:
            logger.info("connection for external source %s has no access token", source_id)
            return None

        result = await integration.register_webhook(
            WebhookRegistrationConfig(
                access_token=connection.access_token,
                callback_url=self.callback_url(external_source.service, external_source.id),
                secret=external_source.secret,
            ),
            external_source.source,
        )
        if result.ok:
            await self._external_sources.update_status(external_source.id, "CONNECTED")
            advanced = await self._workflows.mark_ready_for_external_source(external_source.id)
            logger.info("registered external source %s, %d workflow(s) ready", source_id, advanced)
        else:
            await self._external_sources.update_status(external_source.id, "ERRORED")
            logger.warning(
                "registration failed for external source %s: %s",
                source_id,
                None if result.error is None else result.error.message,
            )
        return result
