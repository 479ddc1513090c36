"""Create trigger registration tables.

Revision ID: 001_trigger_registration
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001_trigger_registration"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    op.create_table(
        "api_connections",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("organization_id", sa.String(64), nullable=False),
        sa.Column("provider", sa.String(128), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="CONNECTED"),
        sa.Column("access_token", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(op.f("ix_api_connections_organization_id"), "api_connections", ["organization_id"])
    op.create_index(
        "idx_api_connections_org_provider_status_created",
        "api_connections",
        ["organization_id", "provider", "status", "created_at"],
    )

    op.create_table(
        "external_sources",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("organization_id", sa.String(64), nullable=False),
        sa.Column("key", sa.String(512), nullable=False),
        sa.Column("type", sa.String(32), nullable=False, server_default="WEBHOOK"),
        sa.Column("service", sa.String(128), nullable=False),
        sa.Column("source", JSONB, nullable=True),
        sa.Column("secret", sa.String(255), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="CREATED"),
        sa.Column("connection_id", UUID(as_uuid=True), sa.ForeignKey("api_connections.id"), nullable=True),
        sa.Column("manual_registration", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("organization_id", "key", name="uq_external_sources_organization_key"),
    )
    op.create_index(op.f("ix_external_sources_organization_id"), "external_sources", ["organization_id"])
    op.create_index("idx_external_sources_org_service", "external_sources", ["organization_id", "service"])

    op.create_table(
        "workflows",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("organization_id", sa.String(64), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("package_json", JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("trigger_type", sa.String(32), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="CREATED"),
        sa.Column("external_source_id", UUID(as_uuid=True), sa.ForeignKey("external_sources.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("organization_id", "slug", name="uq_workflows_organization_slug"),
    )
    op.create_index(op.f("ix_workflows_organization_id"), "workflows", ["organization_id"])
    op.create_index("idx_workflows_external_source", "workflows", ["external_source_id"])

    op.create_table(
        "event_rules",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("organization_id", sa.String(64), nullable=False),
        sa.Column("workflow_id", UUID(as_uuid=True), sa.ForeignKey("workflows.id"), nullable=False),
        sa.Column("environment_id", sa.String(64), nullable=False),
        sa.Column("filter", JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("trigger_type", sa.String(32), nullable=False),
        sa.Column("trigger", JSONB, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("workflow_id", "environment_id", name="uq_event_rules_workflow_environment"),
    )
    op.create_index(op.f("ix_event_rules_organization_id"), "event_rules", ["organization_id"])


def downgrade() -> None:
    op.drop_index(op.f("ix_event_rules_organization_id"), table_name="event_rules")
    op.drop_table("event_rules")

    op.drop_index("idx_workflows_external_source", table_name="workflows")
    op.drop_index(op.f("ix_workflows_organization_id"), table_name="workflows")
    op.drop_table("workflows")

    op.drop_index("idx_external_sources_org_service", table_name="external_sources")
    op.drop_index(op.f("ix_external_sources_organization_id"), table_name="external_sources")
    op.drop_table("external_sources")

    op.drop_index("idx_api_connections_org_provider_status_created", table_name="api_connections")
    op.drop_index(op.f("ix_api_connections_organization_id"), table_name="api_connections")
    op.drop_table("api_connections")
