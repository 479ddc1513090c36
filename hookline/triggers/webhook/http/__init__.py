"""HTTP surface for webhook ingestion and trigger registration."""

from hookline.triggers.webhook.http.app import create_webhook_app

__all__ = ["create_webhook_app"]
