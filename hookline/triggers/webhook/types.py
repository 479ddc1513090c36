"""Webhook ingestion and registration data types."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal

ExternalSourceType = Literal["WEBHOOK"]
ExternalSourceStatus = Literal["CREATED", "CONNECTED", "ERRORED"]
WorkflowStatus = Literal["CREATED", "READY"]
ConnectionStatus = Literal["CONNECTED", "DISCONNECTED"]


@dataclass(frozen=True, slots=True)
class NormalizedRequest:
    """Inbound HTTP request with exact body bytes and best-effort parsed body."""

    method: str
    url: str
    headers: Mapping[str, str]
    raw_body: bytes
    body: Any = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    def header(self, name: str, default: str | None = None) -> str | None:
        return self.headers.get(name.lower(), default)


@dataclass(slots=True)
class CanonicalEvent:
    """Provider-agnostic event forwarded to the ingestion sink."""

    id: str
    payload: Any
    name: str
    timestamp: str | None = None
    context: dict[str, Any] | None = None
    service: str | None = None
    source_type: str | None = None


@dataclass(slots=True)
class WebhookOk:
    """Delivery verified and normalized into events."""

    events: list[CanonicalEvent]
    status: Literal["ok"] = "ok"


@dataclass(slots=True)
class WebhookIgnored:
    """Delivery accepted but intentionally not turned into events."""

    reason: str
    status: Literal["ignored"] = "ignored"


@dataclass(slots=True)
class WebhookError:
    """Delivery rejected."""

    message: str
    status: Literal["error"] = "error"


HandledWebhook = WebhookOk | WebhookIgnored | WebhookError


@dataclass(slots=True)
class WebhookRegistrationConfig:
    """Parameters for creating a webhook at a provider."""

    access_token: str
    callback_url: str
    secret: str
    content_type: Literal["json", "form"] = "json"
    insecure_ssl: bool = False


@dataclass(slots=True)
class RegistrationError:
    """Structured provider registration failure."""

    message: str
    status_code: int | None = None


@dataclass(slots=True)
class RegistrationResult:
    """Outcome of one provider registration call."""

    ok: bool
    data: dict[str, Any] = field(default_factory=dict)
    error: RegistrationError | None = None


@dataclass(slots=True)
class FieldIssue:
    """Field-level validation problem."""

    loc: str
    message: str
    type: str


@dataclass(slots=True)
class ReconcileResult:
    """Result of reconciling one workflow's trigger metadata."""

    status: Literal["success", "validationError"]
    workflow_id: str | None = None
    errors: list[FieldIssue] = field(default_factory=list)


@dataclass(slots=True)
class DispatchOutcome:
    """Successful dispatch summary returned to the HTTP layer."""

    ignored: bool
    forwarded: int = 0
    reason: str | None = None
