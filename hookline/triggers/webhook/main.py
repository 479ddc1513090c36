"""Webhook application bootstrap and dependency container."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hookline.config.models import HookLineConfig
from hookline.messaging import InMemoryMessageBroker, MessageBroker
from hookline.triggers.webhook.dispatcher import BrokerIngestionSink, ExternalSourceDispatcher, IngestionSink
from hookline.triggers.webhook.http.app import create_webhook_app
from hookline.triggers.webhook.integrations import IntegrationRegistry, default_registry
from hookline.triggers.webhook.persistence import (
    ConnectionRepository,
    EventRuleRepository,
    ExternalSourceRepository,
    InMemoryConnectionRepository,
    InMemoryEventRuleRepository,
    InMemoryExternalSourceRepository,
    InMemoryWorkflowRepository,
    SqlConnectionRepository,
    SqlEventRuleRepository,
    SqlExternalSourceRepository,
    SqlWorkflowRepository,
    WorkflowRepository,
)
from hookline.triggers.webhook.reconciler import TriggerRegistrationReconciler
from hookline.triggers.webhook.registration import ProviderApiClient
from hookline.triggers.webhook.worker import ExternalSourceRegistrationWorker


@dataclass(slots=True)
class WebhookApplication:
    """Assemble webhook services and expose lifecycle methods."""

    config: HookLineConfig
    workflows: WorkflowRepository
    external_sources: ExternalSourceRepository
    event_rules: EventRuleRepository
    connections: ConnectionRepository
    client: ProviderApiClient
    registry: IntegrationRegistry
    broker: MessageBroker
    sink: IngestionSink
    dispatcher: ExternalSourceDispatcher
    reconciler: TriggerRegistrationReconciler
    worker: ExternalSourceRegistrationWorker
    started: bool = False
    subscribed: bool = False

    async def start(self) -> None:
        if self.started:
            return
        await self.client.start()
        if not self.subscribed:
            self.worker.subscribe(self.broker)
            self.subscribed = True
        self.started = True

    async def stop(self) -> None:
        if not self.started:
            return
        await self.reconciler.drain()
        drain = getattr(self.broker, "drain", None)
        if drain is not None:
            await drain()
        await self.client.close()
        self.started = False

    async def health_status(self) -> dict[str, Any]:
        return {
            "started": self.started,
            "client_started": self.client.started,
            "services": self.registry.services(),
        }

    def build_http_app(self) -> FastAPI:
        @asynccontextmanager
        async def lifespan(_: FastAPI) -> AsyncIterator[None]:
            await self.start()
            try:
                yield
            finally:
                await self.stop()

        return create_webhook_app(
            dispatcher=self.dispatcher,
            reconciler=self.reconciler,
            external_sources=self.external_sources,
            config=self.config.http,
            lifespan=lifespan,
        )


def build_webhook_application(
    config: HookLineConfig | None = None,
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    broker: MessageBroker | None = None,
    sink: IngestionSink | None = None,
    client: ProviderApiClient | None = None,
    registry: IntegrationRegistry | None = None,
) -> WebhookApplication:
    """Factory with in-memory defaults, or SQL repositories when a session factory is given."""

    cfg = config or HookLineConfig()
    if session_factory is None:
        workflows: WorkflowRepository = InMemoryWorkflowRepository()
        external_sources: ExternalSourceRepository = InMemoryExternalSourceRepository()
        event_rules: EventRuleRepository = InMemoryEventRuleRepository()
        connections: ConnectionRepository = InMemoryConnectionRepository()
    else:
        workflows = SqlWorkflowRepository(session_factory)
        external_sources = SqlExternalSourceRepository(session_factory)
        event_rules = SqlEventRuleRepository(session_factory)
        connections = SqlConnectionRepository(session_factory)

    provider_client = client or ProviderApiClient(timeout_seconds=cfg.providers.timeout_seconds)
    integrations = registry or default_registry(provider_client, cfg.providers)
    message_broker = broker or InMemoryMessageBroker()
    ingestion_sink = sink or BrokerIngestionSink(message_broker)
    return WebhookApplication(
        config=cfg,
        workflows=workflows,
        external_sources=external_sources,
        event_rules=event_rules,
        connections=connections,
        client=provider_client,
        registry=integrations,
        broker=message_broker,
        sink=ingestion_sink,
        dispatcher=ExternalSourceDispatcher(integrations, ingestion_sink),
        reconciler=TriggerRegistrationReconciler(
            workflows=workflows,
            external_sources=external_sources,
            event_rules=event_rules,
            connections=connections,
            registry=integrations,
            broker=message_broker,
            config=cfg.registration,
        ),
        worker=ExternalSourceRegistrationWorker(
            external_sources=external_sources,
            connections=connections,
            workflows=workflows,
            registry=integrations,
            config=cfg.registration,
        ),
    )
