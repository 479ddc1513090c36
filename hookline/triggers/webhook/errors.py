"""Exceptions raised by the webhook trigger core."""

from __future__ import annotations


class WebhookTriggerError(Exception):
    """Base exception for webhook ingestion and registration."""


class InvalidSource(WebhookTriggerError, ValueError):
    """Raised when a source document does not match the provider's shape."""

    def __init__(self, service: str, message: str) -> None:
        self.service = service
        super().__init__(f"Invalid {service} source: {message}")


class WebhookDispatchError(WebhookTriggerError):
    """Hard dispatch failure surfaced to the inbound HTTP caller."""

    code = "DISPATCH_FAILED"


class UnsupportedSourceType(WebhookDispatchError):
    """Raised when an external source type has no handler."""

    code = "UNSUPPORTED_SOURCE_TYPE"

    def __init__(self, source_type: str) -> None:
        self.source_type = source_type
        super().__init__(f"Could not handle external source with unsupported type: {source_type}")


class SignatureMismatch(WebhookDispatchError):
    """Raised when an integration rejects a delivery."""

    code = "SIGNATURE_MISMATCH"


class IngestionError(WebhookDispatchError):
    """Raised when the ingestion sink fails part way through a delivery."""

    code = "INGESTION_FAILED"

    def __init__(self, event_id: str, forwarded: int, cause: Exception) -> None:
        self.event_id = event_id
        self.forwarded = forwarded
        super().__init__(f"Failed to ingest event {event_id} after {forwarded} forwarded: {cause}")


class ProviderAPIError(WebhookTriggerError):
    """Non-success response from a provider API."""

    def __init__(self, status_code: int, status_text: str) -> None:
        self.status_code = status_code
        self.status_text = status_text
        super().__init__(f"Provider API returned {status_code}: {status_text}")


class ReconcileConflictError(WebhookTriggerError):
    """Raised when storage conflicts persist after all retries."""
