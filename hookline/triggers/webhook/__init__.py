"""Webhook ingestion and trigger registration core."""

from hookline.triggers.webhook.dispatcher import BrokerIngestionSink, ExternalSourceDispatcher, IngestionSink
from hookline.triggers.webhook.errors import (
    IngestionError,
    InvalidSource,
    ProviderAPIError,
    ReconcileConflictError,
    SignatureMismatch,
    UnsupportedSourceType,
    WebhookDispatchError,
    WebhookTriggerError,
)
from hookline.triggers.webhook.http.app import create_webhook_app
from hookline.triggers.webhook.integrations import (
    GitHubWebhookIntegration,
    IntegrationRegistry,
    ManualWebhookIntegration,
    WebhookIntegration,
    WhatsAppWebhookIntegration,
    default_registry,
)
from hookline.triggers.webhook.main import WebhookApplication, build_webhook_application
from hookline.triggers.webhook.reconciler import TriggerRegistrationReconciler
from hookline.triggers.webhook.registration import ProviderApiClient
from hookline.triggers.webhook.request import from_starlette, normalize_request
from hookline.triggers.webhook.schemas import TriggerMetadata, WorkflowMetadata
from hookline.triggers.webhook.signature import compute_signature, verify_signature
from hookline.triggers.webhook.types import (
    CanonicalEvent,
    DispatchOutcome,
    FieldIssue,
    HandledWebhook,
    NormalizedRequest,
    ReconcileResult,
    RegistrationError,
    RegistrationResult,
    WebhookError,
    WebhookIgnored,
    WebhookOk,
    WebhookRegistrationConfig,
)
from hookline.triggers.webhook.worker import ExternalSourceRegistrationWorker

__all__ = [
    "BrokerIngestionSink",
    "CanonicalEvent",
    "DispatchOutcome",
    "ExternalSourceDispatcher",
    "ExternalSourceRegistrationWorker",
    "FieldIssue",
    "GitHubWebhookIntegration",
    "HandledWebhook",
    "IngestionError",
    "IngestionSink",
    "IntegrationRegistry",
    "InvalidSource",
    "ManualWebhookIntegration",
    "NormalizedRequest",
    "ProviderAPIError",
    "ProviderApiClient",
    "ReconcileConflictError",
    "ReconcileResult",
    "RegistrationError",
    "RegistrationResult",
    "SignatureMismatch",
    "TriggerMetadata",
    "TriggerRegistrationReconciler",
    "UnsupportedSourceType",
    "WebhookApplication",
    "WebhookDispatchError",
    "WebhookError",
    "WebhookIgnored",
    "WebhookIntegration",
    "WebhookOk",
    "WebhookRegistrationConfig",
    "WebhookTriggerError",
    "WhatsAppWebhookIntegration",
    "WorkflowMetadata",
    "build_webhook_application",
    "compute_signature",
    "create_webhook_app",
    "default_registry",
    "from_starlette",
    "normalize_request",
    "verify_signature",
]
