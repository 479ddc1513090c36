"""Repository protocols consumed by the reconciler, dispatcher gateway and worker."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from hookline.triggers.webhook.persistence.models import (
    ConnectionModel,
    EventRuleModel,
    ExternalSourceModel,
    WorkflowModel,
)


class WorkflowRepository(Protocol):
    async def upsert(
        self,
        *,
        organization_id: str,
        slug: str,
        title: str,
        package_json: dict[str, Any],
        trigger_type: str,
        initial_status: str,
    ) -> WorkflowModel:
        """Insert or update by (organization_id, slug); status is only written on insert."""

    async def link_external_source(self, workflow_id: UUID, external_source_id: UUID) -> None:
        """Point the workflow at its external source."""

    async def get(self, workflow_id: UUID) -> WorkflowModel | None: ...

    async def get_by_slug(self, *, organization_id: str, slug: str) -> WorkflowModel | None: ...

    async def list(self, *, organization_id: str) -> list[WorkflowModel]: ...

    async def mark_ready_for_external_source(self, external_source_id: UUID) -> int:
        """Advance CREATED workflows linked to the source to READY; returns the count."""


class ExternalSourceRepository(Protocol):
    async def upsert(
        self,
        *,
        organization_id: str,
        key: str,
        type: str,
        service: str,
        source: Any,
        secret: str,
        connection_id: UUID | None,
        manual_registration: bool,
    ) -> ExternalSourceModel:
        """Insert or update by (organization_id, key).

        Updates replace the source document and set connection_id only when
        the row has none. Secret, status and manual_registration are kept.
        """

    async def get(self, source_id: UUID) -> ExternalSourceModel | None: ...

    async def update_status(self, source_id: UUID, status: str) -> None: ...

    async def list(self, *, organization_id: str) -> list[ExternalSourceModel]: ...


class EventRuleRepository(Protocol):
    async def upsert(
        self,
        *,
        organization_id: str,
        workflow_id: UUID,
        environment_id: str,
        filter: dict[str, Any],
        trigger_type: str,
        trigger: dict[str, Any],
    ) -> EventRuleModel:
        """Insert or update by (workflow_id, environment_id); updates only touch the filter."""

    async def get(self, *, workflow_id: UUID, environment_id: str) -> EventRuleModel | None: ...

    async def list(self, *, organization_id: str) -> list[EventRuleModel]: ...


class ConnectionRepository(Protocol):
    async def create(
        self,
        *,
        organization_id: str,
        provider: str,
        status: str = "CONNECTED",
        access_token: str | None = None,
        created_at: datetime | None = None,
    ) -> ConnectionModel: ...

    async def get(self, connection_id: UUID) -> ConnectionModel | None: ...

    async def find_latest_connected(self, *, organization_id: str, provider: str) -> ConnectionModel | None:
        """Most recently created CONNECTED connection for the provider, if any."""
