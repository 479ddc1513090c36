"""Explicit service-identifier to integration registry."""

from __future__ import annotations

from hookline.config.models import ProvidersConfig
from hookline.triggers.webhook.integrations.base import WebhookIntegration
from hookline.triggers.webhook.integrations.github import GitHubWebhookIntegration
from hookline.triggers.webhook.integrations.whatsapp import WhatsAppWebhookIntegration
from hookline.triggers.webhook.registration import ProviderApiClient


class IntegrationRegistry:
    """Map service identifiers to named-provider integrations."""

    def __init__(self) -> None:
        self._integrations: dict[str, WebhookIntegration] = {}

    def register(self, integration: WebhookIntegration) -> None:
        service = integration.service.strip()
        if not service:
            raise ValueError("integration service identifier is required")
        if service in self._integrations:
            raise ValueError(f"integration already registered for service: {service}")
        self._integrations[service] = integration

    def get(self, service: str) -> WebhookIntegration | None:
        return self._integrations.get(service)

    def __contains__(self, service: object) -> bool:
        return service in self._integrations

    def services(self) -> list[str]:
        return sorted(self._integrations)


def default_registry(client: ProviderApiClient, providers: ProvidersConfig | None = None) -> IntegrationRegistry:
    """Registry with every built-in named-provider integration."""
    cfg = providers or ProvidersConfig()
    registry = IntegrationRegistry()
    registry.register(
        GitHubWebhookIntegration(
            client,
            api_base_url=cfg.github.api_base_url,
            api_version=cfg.github.api_version,
        )
    )
    registry.register(WhatsAppWebhookIntegration(client, graph_base_url=cfg.whatsapp.graph_base_url))
    return registry
