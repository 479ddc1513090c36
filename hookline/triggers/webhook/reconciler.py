"""Reconcile declared workflow trigger metadata into persisted registration state."""

from __future__ import annotations

import asyncio
import logging
import secrets
from collections.abc import Callable
from typing import Any, assert_never
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from hookline.config.models import RegistrationConfig
from hookline.messaging import EXTERNAL_SOURCE_UPSERTED, MessageBroker
from hookline.triggers.webhook.errors import InvalidSource, ReconcileConflictError
from hookline.triggers.webhook.integrations import IntegrationRegistry
from hookline.triggers.webhook.persistence import (
    ConnectionRepository,
    EventRuleRepository,
    ExternalSourceRepository,
    WorkflowModel,
    WorkflowRepository,
)
from hookline.triggers.webhook.schemas import (
    SELF_TRIGGER_SERVICE,
    CustomEventTrigger,
    HttpEndpointTrigger,
    ScheduledTrigger,
    TriggerMetadata,
    WebhookTrigger,
    WorkflowMetadata,
)
from hookline.triggers.webhook.types import FieldIssue, ReconcileResult

logger = logging.getLogger(__name__)


class TriggerRegistrationReconciler:
    """Make Workflow, ExternalSource and EventRule rows match a workflow's trigger.

    Calls are idempotent for identical input: every write is a keyed upsert.
    The EXTERNAL_SOURCE_UPSERTED notification is handed to a background task so
    a broker failure is reported but does not fail the registration.
    """

    def __init__(
        self,
        *,
        workflows: WorkflowRepository,
        external_sources: ExternalSourceRepository,
        event_rules: EventRuleRepository,
        connections: ConnectionRepository,
        registry: IntegrationRegistry,
        broker: MessageBroker,
        config: RegistrationConfig | None = None,
        on_notification_error: Callable[[BaseException], None] | None = None,
    ) -> None:
        self._workflows = workflows
        self._external_sources = external_sources
        self._event_rules = event_rules
        self._connections = connections
        self._registry = registry
        self._broker = broker
        self._config = config or RegistrationConfig()
        self._on_notification_error = on_notification_error
        self._pending: set[asyncio.Task[None]] = set()

    async def call(
        self,
        slug: str,
        raw_payload: Any,
        organization_id: str,
        environment_id: str,
    ) -> ReconcileResult:
        try:
            metadata = WorkflowMetadata.model_validate(raw_payload)
        except ValidationError as exc:
            return ReconcileResult(status="validationError", errors=_field_issues(exc))

        webhook = _external_webhook(metadata.trigger)
        key: str | None = None
        if webhook is not None:
            try:
                key = self._key_for(webhook)
            except InvalidSource as exc:
                return ReconcileResult(
                    status="validationError",
                    errors=[FieldIssue(loc="trigger.source", message=str(exc), type="invalid_source")],
                )

        last_error: IntegrityError | None = None
        for attempt in range(1, self._config.conflict_retries + 1):
            try:
                workflow = await self._apply(slug, metadata, organization_id, environment_id, webhook, key)
            except IntegrityError as exc:
                last_error = exc
                logger.warning(
                    "storage conflict reconciling %s/%s (attempt %d/%d)",
                    organization_id,
                    slug,
                    attempt,
                    self._config.conflict_retries,
                )
                continue
            return ReconcileResult(status="success", workflow_id=str(workflow.id))
        raise ReconcileConflictError(
            f"storage conflict persisted for workflow {organization_id}/{slug}"
        ) from last_error

    async def drain(self) -> None:
        """Wait for pending notifications to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _apply(
        self,
        slug: str,
        metadata: WorkflowMetadata,
        organization_id: str,
        environment_id: str,
        webhook: WebhookTrigger | None,
        key: str | None,
    ) -> WorkflowModel:
        trigger = metadata.trigger
        workflow = await self._workflows.upsert(
            organization_id=organization_id,
            slug=slug,
            title=metadata.name,
            package_json=dict(metadata.package),
            trigger_type=trigger.type,
            initial_status="READY" if trigger.service == SELF_TRIGGER_SERVICE else "CREATED",
        )

        if webhook is not None:
            assert key is not None
            connection = await self._connections.find_latest_connected(
                organization_id=organization_id, provider=webhook.service
            )
            external_source = await self._external_sources.upsert(
                organization_id=organization_id,
                key=key,
                type="WEBHOOK",
                service=webhook.service,
                source=webhook.source,
                secret=secrets.token_urlsafe(self._config.secret_bytes),
                connection_id=None if connection is None else connection.id,
                manual_registration=webhook.service not in self._registry,
            )
            await self._workflows.link_external_source(workflow.id, external_source.id)
            workflow.external_source_id = external_source.id
            self._notify(external_source.id)

        await self._event_rules.upsert(
            organization_id=organization_id,
            workflow_id=workflow.id,
            environment_id=environment_id,
            filter=dict(trigger.filter),
            trigger_type=trigger.type,
            trigger=trigger.model_dump(mode="json"),
        )
        return workflow

    def _key_for(self, trigger: WebhookTrigger) -> str:
        integration = self._registry.get(trigger.service)
        if integration is not None:
            return integration.key_for_source(trigger.source)
        return trigger.service

    def _notify(self, external_source_id: UUID) -> None:
        task = asyncio.create_task(
            self._broker.publish(
                EXTERNAL_SOURCE_UPSERTED,
                {"id": str(external_source_id)},
                deliver_after=self._config.notification_delay_seconds,
            )
        )
        self._pending.add(task)
        task.add_done_callback(self._notification_done)

    def _notification_done(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        logger.error("failed to publish %s notification", EXTERNAL_SOURCE_UPSERTED, exc_info=exc)
        if self._on_notification_error is not None:
            self._on_notification_error(exc)


def _external_webhook(trigger: TriggerMetadata) -> WebhookTrigger | None:
    if isinstance(trigger, WebhookTrigger):
        return None if trigger.service == SELF_TRIGGER_SERVICE else trigger
    if isinstance(trigger, CustomEventTrigger | HttpEndpointTrigger | ScheduledTrigger):
        return None
    assert_never(trigger)


def _field_issues(exc: ValidationError) -> list[FieldIssue]:
    return [
        FieldIssue(
            loc=".".join(str(part) for part in error.get("loc", ())),
            message=str(error.get("msg", "invalid")),
            type=str(error.get("type", "value_error")),
        )
        for error in exc.errors()
    ]
