"""ORM models for workflow trigger registration."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from hookline.db import Base

WORKFLOW_IDENTITY = "uq_workflows_organization_slug"
EXTERNAL_SOURCE_IDENTITY = "uq_external_sources_organization_key"
EVENT_RULE_IDENTITY = "uq_event_rules_workflow_environment"


class ConnectionModel(Base):
    """Provider API connection owned by an organization."""

    __tablename__ = "api_connections"
    __table_args__ = (
        Index("idx_api_connections_org_provider_status_created", "organization_id", "provider", "status", "created_at"),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    provider: Mapped[str] = mapped_column(String(128), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="CONNECTED")
    access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ExternalSourceModel(Base):
    """Persisted webhook trigger configuration, one row per (organization, key)."""

    __tablename__ = "external_sources"
    __table_args__ = (
        UniqueConstraint("organization_id", "key", name=EXTERNAL_SOURCE_IDENTITY),
        Index("idx_external_sources_org_service", "organization_id", "service"),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    key: Mapped[str] = mapped_column(String(512), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False, default="WEBHOOK")
    service: Mapped[str] = mapped_column(String(128), nullable=False)
    source: Mapped[Any] = mapped_column(JSONB, nullable=True)
    secret: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="CREATED")
    connection_id: Mapped[UUID | None] = mapped_column(ForeignKey("api_connections.id"), nullable=True)
    manual_registration: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )


class WorkflowModel(Base):
    """Deployed workflow, one row per (organization, slug)."""

    __tablename__ = "workflows"
    __table_args__ = (
        UniqueConstraint("organization_id", "slug", name=WORKFLOW_IDENTITY),
        Index("idx_workflows_external_source", "external_source_id"),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    package_json: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    trigger_type: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="CREATED")
    external_source_id: Mapped[UUID | None] = mapped_column(ForeignKey("external_sources.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )


class EventRuleModel(Base):
    """Trigger-matching rule for one workflow in one environment."""

    __tablename__ = "event_rules"
    __table_args__ = (UniqueConstraint("workflow_id", "environment_id", name=EVENT_RULE_IDENTITY),)

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    workflow_id: Mapped[UUID] = mapped_column(ForeignKey("workflows.id"), nullable=False)
    environment_id: Mapped[str] = mapped_column(String(64), nullable=False)
    filter: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    trigger_type: Mapped[str] = mapped_column(String(32), nullable=False)
    trigger: Mapped[dict] = mapped_column(JSONB, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )
