"""Wire schemas for workflow trigger metadata and provider source documents."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, JsonValue, TypeAdapter, ValidationError, model_validator

SELF_TRIGGER_SERVICE = "trigger"

EventFilter = dict[str, Any]


class _TriggerBase(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str
    filter: EventFilter = Field(default_factory=dict)


class CustomEventTrigger(_TriggerBase):
    """Event sent by the platform's own SDK."""

    type: Literal["CUSTOM_EVENT"]
    service: Literal["trigger"]


class WebhookTrigger(_TriggerBase):
    """Provider webhook; source is interpreted by the provider integration."""

    type: Literal["WEBHOOK"]
    service: str = Field(min_length=1)
    source: JsonValue


class HttpEndpointTrigger(_TriggerBase):
    """Inbound HTTP endpoint hosted by the platform."""

    type: Literal["HTTP_ENDPOINT"]
    service: Literal["trigger"]


class ScheduledTrigger(_TriggerBase):
    """Schedule owned by the platform."""

    type: Literal["SCHEDULE"]
    service: Literal["trigger"]


TriggerMetadata = Annotated[
    CustomEventTrigger | WebhookTrigger | HttpEndpointTrigger | ScheduledTrigger,
    Field(discriminator="type"),
]

trigger_metadata_adapter: TypeAdapter[TriggerMetadata] = TypeAdapter(TriggerMetadata)


class WorkflowMetadata(BaseModel):
    """Metadata a workflow declares when it is deployed."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str = Field(min_length=1)
    package: dict[str, Any] = Field(default_factory=dict)
    trigger: TriggerMetadata


class GitHubRepositorySource(BaseModel):
    model_config = ConfigDict(extra="ignore")

    subresource: Literal["repository"]
    repo: str = Field(pattern=r"^[^/\s]+/[^/\s]+$")
    events: list[str] = Field(default_factory=lambda: ["*"])


class GitHubOrganizationSource(BaseModel):
    model_config = ConfigDict(extra="ignore")

    subresource: Literal["organization"]
    org: str = Field(min_length=1, pattern=r"^[^/\s]+$")
    events: list[str] = Field(default_factory=lambda: ["*"])


GitHubSource = Annotated[
    GitHubRepositorySource | GitHubOrganizationSource,
    Field(discriminator="subresource"),
]

github_source_adapter: TypeAdapter[GitHubSource] = TypeAdapter(GitHubSource)


class WhatsAppSource(BaseModel):
    """WhatsApp Business Account subscription."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    account_id: str = Field(alias="accountId", min_length=1)
    events: list[str] = Field(default_factory=lambda: ["messages"])


class VerifyPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    enabled: bool = False
    header: str | None = None

    @model_validator(mode="after")
    def _require_header_when_enabled(self) -> VerifyPayload:
        if self.enabled and not (self.header and self.header.strip()):
            raise ValueError("verifyPayload.header is required when verification is enabled")
        return self


class ManualWebhookSource(BaseModel):
    """Source document for providers registered by hand."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    event: str = Field(min_length=1)
    verify_payload: VerifyPayload = Field(default_factory=VerifyPayload, alias="verifyPayload")


def describe_validation_error(exc: ValidationError) -> str:
    """Render the first pydantic error as `loc: message`."""
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    loc = ".".join(str(part) for part in first.get("loc", ())) or "source"
    return f"{loc}: {first.get('msg', 'invalid')}"
