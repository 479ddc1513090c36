"""Repository layer for workflow trigger registration."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hookline.triggers.webhook.persistence.models import (
    EVENT_RULE_IDENTITY,
    EXTERNAL_SOURCE_IDENTITY,
    WORKFLOW_IDENTITY,
    ConnectionModel,
    EventRuleModel,
    ExternalSourceModel,
    WorkflowModel,
)

_POPULATE = {"populate_existing": True}


class SqlWorkflowRepository:
    """PostgreSQL workflow repository; every upsert is a single statement."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

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
        stmt = pg_insert(WorkflowModel).values(
            id=uuid4(),
            organization_id=organization_id,
            slug=slug,
            title=title,
            package_json=package_json,
            trigger_type=trigger_type,
            status=initial_status,
        )
        stmt = stmt.on_conflict_do_update(
            constraint=WORKFLOW_IDENTITY,
            set_={
                "title": stmt.excluded.title,
                "package_json": stmt.excluded.package_json,
                "trigger_type": stmt.excluded.trigger_type,
                "updated_at": func.now(),
            },
        ).returning(WorkflowModel)
        async with self._session_factory() as session:
            workflow = (await session.scalars(stmt, execution_options=_POPULATE)).one()
            await session.commit()
            return workflow

    async def link_external_source(self, workflow_id: UUID, external_source_id: UUID) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(WorkflowModel)
                .where(WorkflowModel.id == workflow_id)
                .values(external_source_id=external_source_id, updated_at=func.now())
            )
            await session.commit()

    async def get(self, workflow_id: UUID) -> WorkflowModel | None:
        async with self._session_factory() as session:
            return await session.scalar(select(WorkflowModel).where(WorkflowModel.id == workflow_id))

    async def get_by_slug(self, *, organization_id: str, slug: str) -> WorkflowModel | None:
        stmt = select(WorkflowModel).where(
            WorkflowModel.organization_id == organization_id,
            WorkflowModel.slug == slug,
        )
        async with self._session_factory() as session:
            return await session.scalar(stmt)

    async def list(self, *, organization_id: str) -> list[WorkflowModel]:
        stmt = (
            select(WorkflowModel)
            .where(WorkflowModel.organization_id == organization_id)
            .order_by(WorkflowModel.created_at.asc())
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def mark_ready_for_external_source(self, external_source_id: UUID) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                update(WorkflowModel)
                .where(
                    WorkflowModel.external_source_id == external_source_id,
                    WorkflowModel.status == "CREATED",
                )
                .values(status="READY", updated_at=func.now())
            )
            await session.commit()
            return int(result.rowcount or 0)


class SqlExternalSourceRepository:
    """PostgreSQL external source repository."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

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
        stmt = pg_insert(ExternalSourceModel).values(
            id=uuid4(),
            organization_id=organization_id,
            key=key,
            type=type,
            service=service,
            source=source,
            secret=secret,
            status="CREATED",
            connection_id=connection_id,
            manual_registration=manual_registration,
        )
        stmt = stmt.on_conflict_do_update(
            constraint=EXTERNAL_SOURCE_IDENTITY,
            set_={
                "source": stmt.excluded.source,
                "connection_id": func.coalesce(ExternalSourceModel.connection_id, stmt.excluded.connection_id),
                "updated_at": func.now(),
            },
        ).returning(ExternalSourceModel)
        async with self._session_factory() as session:
            external_source = (await session.scalars(stmt, execution_options=_POPULATE)).one()
            await session.commit()
            return external_source

    async def get(self, source_id: UUID) -> ExternalSourceModel | None:
        async with self._session_factory() as session:
            return await session.scalar(select(ExternalSourceModel).where(ExternalSourceModel.id == source_id))

    async def update_status(self, source_id: UUID, status: str) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(ExternalSourceModel)
                .where(ExternalSourceModel.id == source_id)
                .values(status=status, updated_at=func.now())
            )
            await session.commit()

    async def list(self, *, organization_id: str) -> list[ExternalSourceModel]:
        stmt = (
            select(ExternalSourceModel)
            .where(ExternalSourceModel.organization_id == organization_id)
            .order_by(ExternalSourceModel.created_at.asc())
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())


class SqlEventRuleRepository:
    """PostgreSQL event rule repository."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

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
        stmt = pg_insert(EventRuleModel).values(
            id=uuid4(),
            organization_id=organization_id,
            workflow_id=workflow_id,
            environment_id=environment_id,
            filter=filter,
            trigger_type=trigger_type,
            trigger=trigger,
        )
        stmt = stmt.on_conflict_do_update(
            constraint=EVENT_RULE_IDENTITY,
            set_={"filter": stmt.excluded.filter, "updated_at": func.now()},
        ).returning(EventRuleModel)
        async with self._session_factory() as session:
            rule = (await session.scalars(stmt, execution_options=_POPULATE)).one()
            await session.commit()
            return rule

    async def get(self, *, workflow_id: UUID, environment_id: str) -> EventRuleModel | None:
        stmt = select(EventRuleModel).where(
            EventRuleModel.workflow_id == workflow_id,
            EventRuleModel.environment_id == environment_id,
        )
        async with self._session_factory() as session:
            return await session.scalar(stmt)

    async def list(self, *, organization_id: str) -> list[EventRuleModel]:
        stmt = (
            select(EventRuleModel)
            .where(EventRuleModel.organization_id == organization_id)
            .order_by(EventRuleModel.created_at.asc())
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())


class SqlConnectionRepository:
    """PostgreSQL provider connection repository."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create(
        self,
        *,
        organization_id: str,
        provider: str,
        status: str = "CONNECTED",
        access_token: str | None = None,
        created_at: datetime | None = None,
    ) -> ConnectionModel:
        connection = ConnectionModel(
            id=uuid4(),
            organization_id=organization_id,
            provider=provider,
            status=status,
            access_token=access_token,
        )
        if created_at is not None:
            connection.created_at = created_at
        async with self._session_factory() as session:
            session.add(connection)
            await session.flush()
            await session.refresh(connection)
            await session.commit()
            return connection

    async def get(self, connection_id: UUID) -> ConnectionModel | None:
        async with self._session_factory() as session:
            return await session.scalar(select(ConnectionModel).where(ConnectionModel.id == connection_id))

    async def find_latest_connected(self, *, organization_id: str, provider: str) -> ConnectionModel | None:
        stmt = (
            select(ConnectionModel)
            .where(
                ConnectionModel.organization_id == organization_id,
                ConnectionModel.provider == provider,
                ConnectionModel.status == "CONNECTED",
            )
            .order_by(ConnectionModel.created_at.desc())
            .limit(1)
        )
        async with self._session_factory() as session:
            return await session.scalar(stmt)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryWorkflowRepository:
    """In-memory workflow repository for deterministic tests and local runs."""

    def __init__(self) -> None:
        self._items: dict[UUID, WorkflowModel] = {}

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
        existing = await self.get_by_slug(organization_id=organization_id, slug=slug)
        if existing is not None:
            existing.title = title
            existing.package_json = package_json
            existing.trigger_type = trigger_type
            existing.updated_at = _now()
            return existing
        now = _now()
        workflow = WorkflowModel(
            id=uuid4(),
            organization_id=organization_id,
            slug=slug,
            title=title,
            package_json=package_json,
            trigger_type=trigger_type,
            status=initial_status,
            external_source_id=None,
            created_at=now,
            updated_at=now,
        )
        self._items[workflow.id] = workflow
        return workflow

    async def link_external_source(self, workflow_id: UUID, external_source_id: UUID) -> None:
        workflow = self._items.get(workflow_id)
        if workflow is not None:
            workflow.external_source_id = external_source_id
            workflow.updated_at = _now()

    async def get(self, workflow_id: UUID) -> WorkflowModel | None:
        return self._items.get(workflow_id)

    async def get_by_slug(self, *, organization_id: str, slug: str) -> WorkflowModel | None:
        for item in self._items.values():
            if item.organization_id == organization_id and item.slug == slug:
                return item
        return None

    async def list(self, *, organization_id: str) -> list[WorkflowModel]:
        items = [item for item in self._items.values() if item.organization_id == organization_id]
        return sorted(items, key=lambda item: item.created_at)

    async def mark_ready_for_external_source(self, external_source_id: UUID) -> int:
        count = 0
        for item in self._items.values():
            if item.external_source_id == external_source_id and item.status == "CREATED":
                item.status = "READY"
                item.updated_at = _now()
                count += 1
        return count


class InMemoryExternalSourceRepository:
    """In-memory external source repository."""

    def __init__(self) -> None:
        self._items: dict[UUID, ExternalSourceModel] = {}

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
        for item in self._items.values():
            if item.organization_id == organization_id and item.key == key:
                item.source = source
                if item.connection_id is None:
                    item.connection_id = connection_id
                item.updated_at = _now()
                return item
        now = _now()
        external_source = ExternalSourceModel(
            id=uuid4(),
            organization_id=organization_id,
            key=key,
            type=type,
            service=service,
            source=source,
            secret=secret,
            status="CREATED",
            connection_id=connection_id,
            manual_registration=manual_registration,
            created_at=now,
            updated_at=now,
        )
        self._items[external_source.id] = external_source
        return external_source

    async def get(self, source_id: UUID) -> ExternalSourceModel | None:
        return self._items.get(source_id)

    async def update_status(self, source_id: UUID, status: str) -> None:
        item = self._items.get(source_id)
        if item is not None:
            item.status = status
            item.updated_at = _now()

    async def list(self, *, organization_id: str) -> list[ExternalSourceModel]:
        items = [item for item in self._items.values() if item.organization_id == organization_id]
        return sorted(items, key=lambda item: item.created_at)


class InMemoryEventRuleRepository:
    """In-memory event rule repository."""

    def __init__(self) -> None:
        self._items: dict[tuple[UUID, str], EventRuleModel] = {}

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
        existing = self._items.get((workflow_id, environment_id))
        if existing is not None:
            existing.filter = filter
            existing.updated_at = _now()
            return existing
        now = _now()
        rule = EventRuleModel(
            id=uuid4(),
            organization_id=organization_id,
            workflow_id=workflow_id,
            environment_id=environment_id,
            filter=filter,
            trigger_type=trigger_type,
            trigger=trigger,
            created_at=now,
            updated_at=now,
        )
        self._items[(workflow_id, environment_id)] = rule
        return rule

    async def get(self, *, workflow_id: UUID, environment_id: str) -> EventRuleModel | None:
        return self._items.get((workflow_id, environment_id))

    async def list(self, *, organization_id: str) -> list[EventRuleModel]:
        items = [item for item in self._items.values() if item.organization_id == organization_id]
        return sorted(items, key=lambda item: item.created_at)


class InMemoryConnectionRepository:
    """In-memory provider connection repository."""

    def __init__(self) -> None:
        self._items: dict[UUID, ConnectionModel] = {}

    async def create(
        self,
        *,
        organization_id: str,
        provider: str,
        status: str = "CONNECTED",
        access_token: str | None = None,
        created_at: datetime | None = None,
    ) -> ConnectionModel:
        connection = ConnectionModel(
            id=uuid4(),
            organization_id=organization_id,
            provider=provider,
            status=status,
            access_token=access_token,
            created_at=created_at or _now(),
        )
        self._items[connection.id] = connection
        return connection

    async def get(self, connection_id: UUID) -> ConnectionModel | None:
        return self._items.get(connection_id)

    async def find_latest_connected(self, *, organization_id: str, provider: str) -> ConnectionModel | None:
        candidates = [
            item
            for item in self._items.values()
            if item.organization_id == organization_id and item.provider == provider and item.status == "CONNECTED"
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda item: item.created_at)
