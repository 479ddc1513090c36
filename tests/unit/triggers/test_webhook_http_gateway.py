from __future__ import annotations

import asyncio
from typing import Any
from uuid import UUID, uuid4

from fastapi.testclient import TestClient

from hookline.config.models import HookLineConfig, RegistrationConfig
from hookline.triggers.webhook.main import WebhookApplication, build_webhook_application
from hookline.triggers.webhook.signature import compute_signature

SECRET = "gateway-secret"


def _application(**kwargs: Any) -> WebhookApplication:
    config = HookLineConfig(registration=RegistrationConfig(notification_delay_seconds=0))
    return build_webhook_application(config, **kwargs)


def _seed_source(application: WebhookApplication, **overrides: Any) -> UUID:
    values: dict[str, Any] = {
        "organization_id": "org-1",
        "key": "repository.acme/api",
        "type": "WEBHOOK",
        "service": "github",
        "source": {"subresource": "repository", "repo": "acme/api"},
        "secret": SECRET,
        "connection_id": None,
        "manual_registration": False,
    }
    values.update(overrides)
    source = asyncio.run(application.external_sources.upsert(**values))
    return source.id


def _github_headers(body: bytes, *, secret: str = SECRET) -> dict[str, str]:
    return {
        "Content-Type": "application/json",
        "X-GitHub-Event": "push",
        "X-GitHub-Delivery": "delivery-1",
        "X-Hub-Signature-256": f"sha256={compute_signature(secret, body)}",
    }


def test_unknown_or_malformed_source_id_returns_not_found() -> None:
    application = _application()
    with TestClient(application.build_http_app()) as client:
        missing = client.post(f"/api/v1/webhooks/github/{uuid4()}", content=b"{}")
        malformed = client.post("/api/v1/webhooks/github/not-a-uuid", content=b"{}")
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "EXTERNAL_SOURCE_NOT_FOUND"
    assert malformed.status_code == 404


def test_signed_delivery_is_forwarded(make_sink) -> None:
    sink = make_sink()
    application = _application(sink=sink)
    source_id = _seed_source(application)
    body = b'{"ref": "refs/heads/main"}'
    with TestClient(application.build_http_app()) as client:
        resp = client.post(f"/api/v1/webhooks/github/{source_id}", content=body, headers=_github_headers(body))
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "ignored": False, "events": 1, "reason": None}
    event, organization_id = sink.events[0]
    assert organization_id == "org-1"
    assert event.payload == {"ref": "refs/heads/main"}
    assert event.service == "github"


def test_source_posted_under_another_service_returns_not_found(make_sink) -> None:
    sink = make_sink()
    application = _application(sink=sink)
    source_id = _seed_source(
        application,
        service="provider-x",
        key="provider-x",
        source={"event": "ticket.closed", "verifyPayload": {"enabled": True, "header": "x-provider-signature"}},
        manual_registration=True,
    )
    body = b'{"forged": true}'
    with TestClient(application.build_http_app()) as client:
        resp = client.post(
            f"/api/v1/webhooks/github/{source_id}",
            content=body,
            headers={"Content-Type": "application/json", "X-GitHub-Event": "push"},
        )
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "EXTERNAL_SOURCE_NOT_FOUND"
    assert sink.events == []


def test_unsupported_service_is_acknowledged_as_ignored(make_sink) -> None:
    sink = make_sink()
    application = _application(sink=sink)
    source_id = _seed_source(application, service="provider-x", key="provider-x")
    with TestClient(application.build_http_app()) as client:
        resp = client.post(f"/api/v1/webhooks/provider-x/{source_id}", content=b"{}")
    assert resp.status_code == 200
    assert resp.json()["ignored"] is True
    assert "not supported" in resp.json()["reason"]
    assert sink.events == []


def test_bad_signature_returns_server_error(make_sink) -> None:
    sink = make_sink()
    application = _application(sink=sink)
    source_id = _seed_source(application)
    body = b'{"ref": "main"}'
    with TestClient(application.build_http_app()) as client:
        resp = client.post(
            f"/api/v1/webhooks/github/{source_id}",
            content=body,
            headers=_github_headers(body, secret="wrong"),
        )
    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "SIGNATURE_MISMATCH"
    assert sink.events == []


def test_unsupported_source_type_returns_server_error() -> None:
    application = _application()
    source_id = _seed_source(application, type="POLLING")
    with TestClient(application.build_http_app()) as client:
        resp = client.post(f"/api/v1/webhooks/github/{source_id}", content=b"{}")
    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "UNSUPPORTED_SOURCE_TYPE"


def test_ingestion_failure_returns_server_error(make_sink) -> None:
    application = _application(sink=make_sink(fail_on=1))
    source_id = _seed_source(application)
    body = b"{}"
    with TestClient(application.build_http_app()) as client:
        resp = client.post(f"/api/v1/webhooks/github/{source_id}", content=body, headers=_github_headers(body))
    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "INGESTION_FAILED"


def test_workflow_registration_persists_rows() -> None:
    application = _application()
    payload = {
        "name": "Deploy on push",
        "trigger": {
            "type": "WEBHOOK",
            "service": "github",
            "name": "push",
            "source": {"subresource": "repository", "repo": "acme/api"},
        },
    }
    with TestClient(application.build_http_app()) as client:
        resp = client.post("/api/v1/organizations/org-1/environments/env-1/workflows/deploy", json=payload)
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "success"
    workflow = asyncio.run(application.workflows.get(UUID(body["workflow_id"])))
    assert workflow is not None
    assert workflow.status == "CREATED"
    sources = asyncio.run(application.external_sources.list(organization_id="org-1"))
    assert [source.key for source in sources] == ["repository.acme/api"]
    assert workflow.external_source_id == sources[0].id


def test_invalid_metadata_returns_field_details() -> None:
    application = _application()
    payload = {"name": "x", "trigger": {"type": "WEBHOOK", "service": "github", "name": "push", "source": {}}}
    with TestClient(application.build_http_app()) as client:
        resp = client.post("/api/v1/organizations/org-1/environments/env-1/workflows/x", json=payload)
    assert resp.status_code == 400
    error = resp.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["details"][0]["loc"] == "trigger.source"
    assert error["details"][0]["type"] == "invalid_source"


def test_non_json_registration_body_is_rejected() -> None:
    application = _application()
    with TestClient(application.build_http_app()) as client:
        resp = client.post("/api/v1/organizations/org-1/environments/env-1/workflows/x", content=b"not json")
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_JSON"


def test_health_and_request_id_header() -> None:
    application = _application()
    with TestClient(application.build_http_app()) as client:
        resp = client.get("/health", headers={"x-request-id": "req-42"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert resp.headers["x-request-id"] == "req-42"
