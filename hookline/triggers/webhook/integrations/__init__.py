"""Provider webhook integrations."""

from hookline.triggers.webhook.integrations.base import WebhookIntegration
from hookline.triggers.webhook.integrations.github import GitHubWebhookIntegration
from hookline.triggers.webhook.integrations.manual import ManualWebhookIntegration, parse_manual_source
from hookline.triggers.webhook.integrations.registry import IntegrationRegistry, default_registry
from hookline.triggers.webhook.integrations.whatsapp import WhatsAppWebhookIntegration

__all__ = [
    "GitHubWebhookIntegration",
    "IntegrationRegistry",
    "ManualWebhookIntegration",
    "WebhookIntegration",
    "WhatsAppWebhookIntegration",
    "default_registry",
    "parse_manual_source",
]
