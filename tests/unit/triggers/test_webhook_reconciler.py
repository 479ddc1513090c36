from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from sqlalchemy.exc import IntegrityError

from hookline.config.models import RegistrationConfig
from hookline.messaging import EXTERNAL_SOURCE_UPSERTED, InMemoryMessageBroker
from hookline.triggers.webhook.errors import ReconcileConflictError
from hookline.triggers.webhook.integrations import default_registry
from hookline.triggers.webhook.reconciler import TriggerRegistrationReconciler
from hookline.triggers.webhook.registration import ProviderApiClient

ORG = "org-1"
ENV = "env-prod"


def _github_payload(repo: str = "acme/api", filter_: dict[str, Any] | None = None) -> dict[str, Any]:
    return {
        "name": "Deploy on push",
        "package": {"version": "1.2.0"},
        "trigger": {
            "type": "WEBHOOK",
            "service": "github",
            "name": "github.push",
            "filter": filter_ if filter_ is not None else {"ref": ["refs/heads/main"]},
            "source": {"subresource": "repository", "repo": repo, "events": ["push"]},
        },
    }


def _reconciler(repositories: dict[str, Any], broker: Any, **kwargs: Any) -> TriggerRegistrationReconciler:
    return TriggerRegistrationReconciler(
        workflows=repositories["workflows"],
        external_sources=repositories["external_sources"],
        event_rules=repositories["event_rules"],
        connections=repositories["connections"],
        registry=default_registry(ProviderApiClient()),
        broker=broker,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_custom_event_trigger_creates_ready_workflow_and_rule(repositories, broker) -> None:
    reconciler = _reconciler(repositories, broker)
    result = await reconciler.call(
        "nightly-report",
        {
            "name": "Nightly report",
            "trigger": {"type": "CUSTOM_EVENT", "service": "trigger", "name": "report.requested", "filter": {}},
        },
        ORG,
        ENV,
    )
    assert result.status == "success"
    workflows = await repositories["workflows"].list(organization_id=ORG)
    assert len(workflows) == 1
    assert workflows[0].status == "READY"
    assert workflows[0].external_source_id is None
    assert str(workflows[0].id) == result.workflow_id
    assert await repositories["external_sources"].list(organization_id=ORG) == []
    rules = await repositories["event_rules"].list(organization_id=ORG)
    assert len(rules) == 1
    assert rules[0].trigger_type == "CUSTOM_EVENT"
    await reconciler.drain()
    assert broker.get_published() == []


@pytest.mark.asyncio
async def test_webhook_trigger_creates_external_source_and_notifies(repositories, broker) -> None:
    reconciler = _reconciler(repositories, broker)
    result = await reconciler.call("deploy", _github_payload(), ORG, ENV)
    await reconciler.drain()

    assert result.status == "success"
    [workflow] = await repositories["workflows"].list(organization_id=ORG)
    [source] = await repositories["external_sources"].list(organization_id=ORG)
    [rule] = await repositories["event_rules"].list(organization_id=ORG)

    assert workflow.status == "CREATED"
    assert workflow.title == "Deploy on push"
    assert workflow.package_json == {"version": "1.2.0"}
    assert workflow.external_source_id == source.id
    assert source.key == "repository.acme/api"
    assert source.service == "github"
    assert source.status == "CREATED"
    assert source.manual_registration is False
    assert source.connection_id is None
    assert len(source.secret) >= 32
    assert rule.workflow_id == workflow.id
    assert rule.environment_id == ENV
    assert rule.filter == {"ref": ["refs/heads/main"]}
    assert rule.trigger["source"] == {"subresource": "repository", "repo": "acme/api", "events": ["push"]}

    [message] = broker.get_published(EXTERNAL_SOURCE_UPSERTED)
    assert message.payload == {"id": str(source.id)}
    assert message.deliver_after == 15.0


@pytest.mark.asyncio
async def test_reconcile_is_idempotent(repositories, broker) -> None:
    reconciler = _reconciler(repositories, broker)
    first = await reconciler.call("deploy", _github_payload(), ORG, ENV)
    [source_before] = await repositories["external_sources"].list(organization_id=ORG)
    secret_before = source_before.secret
    second = await reconciler.call("deploy", _github_payload(), ORG, ENV)
    await reconciler.drain()

    assert first.workflow_id == second.workflow_id
    assert len(await repositories["workflows"].list(organization_id=ORG)) == 1
    [source_after] = await repositories["external_sources"].list(organization_id=ORG)
    assert source_after.id == source_before.id
    assert source_after.secret == secret_before
    assert len(await repositories["event_rules"].list(organization_id=ORG)) == 1


@pytest.mark.asyncio
async def test_changed_filter_updates_rule_in_place(repositories, broker) -> None:
    reconciler = _reconciler(repositories, broker)
    await reconciler.call("deploy", _github_payload(filter_={"ref": ["refs/heads/main"]}), ORG, ENV)
    [rule_before] = await repositories["event_rules"].list(organization_id=ORG)
    identity = (rule_before.id, rule_before.workflow_id, rule_before.environment_id)

    await reconciler.call("deploy", _github_payload(filter_={"ref": ["refs/heads/release"]}), ORG, ENV)
    await reconciler.drain()

    [rule_after] = await repositories["event_rules"].list(organization_id=ORG)
    assert (rule_after.id, rule_after.workflow_id, rule_after.environment_id) == identity
    assert rule_after.filter == {"ref": ["refs/heads/release"]}


@pytest.mark.asyncio
async def test_second_environment_gets_its_own_rule(repositories, broker) -> None:
    reconciler = _reconciler(repositories, broker)
    await reconciler.call("deploy", _github_payload(), ORG, "env-dev")
    await reconciler.call("deploy", _github_payload(), ORG, "env-prod")
    await reconciler.drain()
    rules = await repositories["event_rules"].list(organization_id=ORG)
    assert sorted(rule.environment_id for rule in rules) == ["env-dev", "env-prod"]
    assert len({rule.workflow_id for rule in rules}) == 1


@pytest.mark.asyncio
async def test_existing_workflow_status_is_not_changed(repositories, broker) -> None:
    reconciler = _reconciler(repositories, broker)
    result = await reconciler.call("deploy", _github_payload(), ORG, ENV)
    [workflow] = await repositories["workflows"].list(organization_id=ORG)
    await repositories["workflows"].mark_ready_for_external_source(workflow.external_source_id)

    payload = _github_payload()
    payload["name"] = "Renamed"
    await reconciler.call("deploy", payload, ORG, ENV)
    await reconciler.drain()

    updated = await repositories["workflows"].get_by_slug(organization_id=ORG, slug="deploy")
    assert str(updated.id) == result.workflow_id
    assert updated.status == "READY"
    assert updated.title == "Renamed"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"name": "x"},
        {"name": "x", "trigger": {"type": "SMOKE_SIGNAL", "service": "trigger", "name": "n"}},
        {"name": "x", "trigger": {"type": "SCHEDULE", "service": "github", "name": "n"}},
        {"name": "x", "trigger": {"type": "WEBHOOK", "service": "github", "name": "n"}},
        {"name": "x", "trigger": {"type": "WEBHOOK", "service": "github", "name": "n", "source": {"repo": "a/b"}}},
        ["not", "an", "object"],
    ],
)
async def test_invalid_metadata_returns_validation_error_and_touches_nothing(repositories, broker, payload) -> None:
    reconciler = _reconciler(repositories, broker)
    result = await reconciler.call("deploy", payload, ORG, ENV)
    await reconciler.drain()
    assert result.status == "validationError"
    assert result.workflow_id is None
    assert result.errors
    assert all(issue.message for issue in result.errors)
    assert await repositories["workflows"].list(organization_id=ORG) == []
    assert await repositories["external_sources"].list(organization_id=ORG) == []
    assert await repositories["event_rules"].list(organization_id=ORG) == []
    assert broker.get_published() == []


@pytest.mark.asyncio
async def test_invalid_source_is_reported_under_trigger_source(repositories, broker) -> None:
    reconciler = _reconciler(repositories, broker)
    result = await reconciler.call("deploy", _github_payload(repo="not-a-repo"), ORG, ENV)
    assert result.status == "validationError"
    assert [issue.loc for issue in result.errors] == ["trigger.source"]
    assert result.errors[0].type == "invalid_source"


@pytest.mark.asyncio
async def test_latest_connected_connection_is_attached(repositories, broker) -> None:
    connections = repositories["connections"]
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    await connections.create(organization_id=ORG, provider="github", access_token="old", created_at=base)
    latest = await connections.create(
        organization_id=ORG, provider="github", access_token="new", created_at=base + timedelta(days=1)
    )
    await connections.create(
        organization_id=ORG,
        provider="github",
        status="DISCONNECTED",
        access_token="gone",
        created_at=base + timedelta(days=2),
    )
    await connections.create(organization_id="org-2", provider="github", created_at=base + timedelta(days=3))
    await connections.create(organization_id=ORG, provider="whatsapp", created_at=base + timedelta(days=4))

    reconciler = _reconciler(repositories, broker)
    await reconciler.call("deploy", _github_payload(), ORG, ENV)
    await reconciler.drain()
    [source] = await repositories["external_sources"].list(organization_id=ORG)
    assert source.connection_id == latest.id


@pytest.mark.asyncio
async def test_connection_is_backfilled_but_never_replaced(repositories, broker) -> None:
    connections = repositories["connections"]
    reconciler = _reconciler(repositories, broker)
    await reconciler.call("deploy", _github_payload(), ORG, ENV)
    [source] = await repositories["external_sources"].list(organization_id=ORG)
    assert source.connection_id is None

    first = await connections.create(organization_id=ORG, provider="github", access_token="a")
    await reconciler.call("deploy", _github_payload(), ORG, ENV)
    assert (await repositories["external_sources"].get(source.id)).connection_id == first.id

    await connections.create(
        organization_id=ORG, provider="github", access_token="b", created_at=first.created_at + timedelta(hours=1)
    )
    await reconciler.call("deploy", _github_payload(), ORG, ENV)
    await reconciler.drain()
    assert (await repositories["external_sources"].get(source.id)).connection_id == first.id


@pytest.mark.asyncio
async def test_source_document_is_updated_on_redeploy(repositories, broker) -> None:
    reconciler = _reconciler(repositories, broker)
    payload = _github_payload()
    await reconciler.call("deploy", payload, ORG, ENV)
    payload["trigger"]["source"]["events"] = ["push", "release"]
    await reconciler.call("deploy", payload, ORG, ENV)
    await reconciler.drain()
    [source] = await repositories["external_sources"].list(organization_id=ORG)
    assert source.source["events"] == ["push", "release"]


@pytest.mark.asyncio
async def test_service_without_integration_is_manual(repositories, broker) -> None:
    reconciler = _reconciler(repositories, broker)
    result = await reconciler.call(
        "tickets",
        {
            "name": "Ticket closed",
            "trigger": {
                "type": "WEBHOOK",
                "service": "provider-x",
                "name": "ticket.closed",
                "filter": {},
                "source": {"event": "ticket.closed", "verifyPayload": {"enabled": True, "header": "x-sig"}},
            },
        },
        ORG,
        ENV,
    )
    await reconciler.drain()
    assert result.status == "success"
    [source] = await repositories["external_sources"].list(organization_id=ORG)
    assert source.key == "provider-x"
    assert source.manual_registration is True


@pytest.mark.asyncio
async def test_source_of_service_without_integration_is_stored_as_given(repositories, broker) -> None:
    reconciler = _reconciler(repositories, broker)
    document = {"url": "https://x/hook", "events": ["a"]}
    result = await reconciler.call(
        "hooks",
        {
            "name": "Provider hook",
            "trigger": {"type": "WEBHOOK", "service": "provider-x", "name": "a", "source": document},
        },
        ORG,
        ENV,
    )
    await reconciler.drain()
    assert result.status == "success"
    [source] = await repositories["external_sources"].list(organization_id=ORG)
    assert source.key == "provider-x"
    assert source.source == document
    assert source.manual_registration is True


@pytest.mark.asyncio
async def test_webhook_on_self_trigger_service_has_no_external_source(repositories, broker) -> None:
    reconciler = _reconciler(repositories, broker)
    result = await reconciler.call(
        "internal",
        {"name": "Internal", "trigger": {"type": "WEBHOOK", "service": "trigger", "name": "n", "source": None}},
        ORG,
        ENV,
    )
    await reconciler.drain()
    assert result.status == "success"
    [workflow] = await repositories["workflows"].list(organization_id=ORG)
    assert workflow.status == "READY"
    assert await repositories["external_sources"].list(organization_id=ORG) == []


@pytest.mark.asyncio
async def test_notification_delay_comes_from_config(repositories, broker) -> None:
    reconciler = _reconciler(repositories, broker, config=RegistrationConfig(notification_delay_seconds=2.5))
    await reconciler.call("deploy", _github_payload(), ORG, ENV)
    await reconciler.drain()
    [message] = broker.get_published(EXTERNAL_SOURCE_UPSERTED)
    assert message.deliver_after == 2.5


class _FailingBroker:
    def __init__(self) -> None:
        self.attempts = 0

    async def publish(self, topic: str, payload: dict[str, Any], *, deliver_after: float | None = None) -> None:
        self.attempts += 1
        raise ConnectionError("broker down")

    def subscribe(self, topic: str, handler: Any) -> None:  # noqa: ARG002
        return None


@pytest.mark.asyncio
async def test_notification_failure_is_reported_without_failing_reconcile(repositories) -> None:
    failing = _FailingBroker()
    reported: list[BaseException] = []
    reconciler = _reconciler(repositories, failing, on_notification_error=reported.append)
    result = await reconciler.call("deploy", _github_payload(), ORG, ENV)
    await reconciler.drain()
    assert result.status == "success"
    assert failing.attempts == 1
    assert len(reported) == 1
    assert isinstance(reported[0], ConnectionError)


class _ConflictingWorkflows:
    """Raise IntegrityError a fixed number of times before delegating."""

    def __init__(self, inner: Any, failures: int) -> None:
        self._inner = inner
        self._failures = failures
        self.attempts = 0

    def __getattr__(self, name: str) -> Any:
        return getattr(self._inner, name)

    async def upsert(self, **kwargs: Any) -> Any:
        self.attempts += 1
        if self.attempts <= self._failures:
            raise IntegrityError("INSERT INTO workflows", {}, Exception("duplicate key"))
        return await self._inner.upsert(**kwargs)


@pytest.mark.asyncio
async def test_storage_conflict_is_retried(repositories, broker) -> None:
    repositories["workflows"] = _ConflictingWorkflows(repositories["workflows"], failures=2)
    reconciler = _reconciler(repositories, broker, config=RegistrationConfig(conflict_retries=3))
    result = await reconciler.call("deploy", _github_payload(), ORG, ENV)
    await reconciler.drain()
    assert result.status == "success"
    assert repositories["workflows"].attempts == 3


@pytest.mark.asyncio
async def test_persistent_storage_conflict_raises(repositories, broker) -> None:
    repositories["workflows"] = _ConflictingWorkflows(repositories["workflows"], failures=10)
    reconciler = _reconciler(repositories, broker, config=RegistrationConfig(conflict_retries=2))
    with pytest.raises(ReconcileConflictError):
        await reconciler.call("deploy", _github_payload(), ORG, ENV)
    assert repositories["workflows"].attempts == 2


class _BrokenRules:
    async def upsert(self, **kwargs: Any) -> Any:  # noqa: ARG002
        raise RuntimeError("database unavailable")


@pytest.mark.asyncio
async def test_other_storage_failures_propagate(repositories, broker) -> None:
    repositories["event_rules"] = _BrokenRules()
    reconciler = _reconciler(repositories, broker)
    with pytest.raises(RuntimeError, match="database unavailable"):
        await reconciler.call("deploy", _github_payload(), ORG, ENV)
    await reconciler.drain()
