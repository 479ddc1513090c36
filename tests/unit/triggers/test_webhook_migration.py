"""Static verification for the trigger registration migration script."""

from pathlib import Path

from hookline.triggers.webhook.persistence.models import (
    EVENT_RULE_IDENTITY,
    EXTERNAL_SOURCE_IDENTITY,
    WORKFLOW_IDENTITY,
)

MIGRATION_PATH = Path(__file__).resolve().parents[3] / "migrations/versions/001_trigger_registration.py"


def test_migration_file_exists_with_expected_revision_metadata() -> None:
    content = MIGRATION_PATH.read_text(encoding="utf-8")

    assert 'revision: str = "001_trigger_registration"' in content
    assert "down_revision: str | None = None" in content
    assert '"""Create trigger registration tables.' in content


def test_migration_declares_required_tables() -> None:
    content = MIGRATION_PATH.read_text(encoding="utf-8")
    for table_name in ['"api_connections"', '"external_sources"', '"workflows"', '"event_rules"']:
        assert table_name in content


def test_migration_unique_constraints_match_upsert_targets() -> None:
    content = MIGRATION_PATH.read_text(encoding="utf-8")
    for constraint in [WORKFLOW_IDENTITY, EXTERNAL_SOURCE_IDENTITY, EVENT_RULE_IDENTITY]:
        assert f'name="{constraint}"' in content


def test_migration_declares_lookup_indexes() -> None:
    content = MIGRATION_PATH.read_text(encoding="utf-8")
    for snippet in [
        "idx_api_connections_org_provider_status_created",
        "idx_external_sources_org_service",
        "idx_workflows_external_source",
    ]:
        assert snippet in content
    assert "def downgrade() -> None:" in content
