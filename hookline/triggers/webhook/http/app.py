"""FastAPI gateway for webhook deliveries and trigger registration."""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.types import Lifespan

from hookline.config.models import HttpConfig
from hookline.triggers.webhook.dispatcher import ExternalSourceDispatcher, describe_outcome
from hookline.triggers.webhook.errors import WebhookDispatchError
from hookline.triggers.webhook.persistence import ExternalSourceRepository
from hookline.triggers.webhook.reconciler import TriggerRegistrationReconciler

logger = logging.getLogger(__name__)


def create_webhook_app(
    *,
    dispatcher: ExternalSourceDispatcher,
    reconciler: TriggerRegistrationReconciler,
    external_sources: ExternalSourceRepository,
    config: HttpConfig | None = None,
    lifespan: Lifespan[FastAPI] | None = None,
) -> FastAPI:
    """Create FastAPI app bound to the dispatcher and reconciler."""

    cfg = config or HttpConfig()
    app = FastAPI(title="hookline", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def _request_id_middleware(request: Request, call_next: Any) -> JSONResponse:
        request_id = request.headers.get("x-request-id", str(uuid4()))
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["x-request-id"] = request_id
        return response

    @app.post("/api/v1/webhooks/{service}/{external_source_id}")
    async def receive_webhook(service: str, external_source_id: str, request: Request) -> JSONResponse:
        request_id = str(getattr(request.state, "request_id", uuid4()))
        source_id = _parse_uuid(external_source_id)
        external_source = None if source_id is None else await external_sources.get(source_id)
        # A source is only reachable under the service it was registered for.
        if external_source is None or external_source.service != service:
            return _error_response(
                404,
                code="EXTERNAL_SOURCE_NOT_FOUND",
                message=f"external source {external_source_id} not found",
                request_id=request_id,
            )
        try:
            outcome = await dispatcher.call(external_source, service, request)
        except WebhookDispatchError as exc:
            logger.warning("[%s] dispatch failed for %s: %s", request_id, external_source_id, exc)
            return _error_response(500, code=exc.code, message=str(exc), request_id=request_id)
        return JSONResponse(status_code=200, content=describe_outcome(outcome))

    @app.post("/api/v1/organizations/{organization_id}/environments/{environment_id}/workflows/{slug}")
    async def register_workflow(
        organization_id: str,
        environment_id: str,
        slug: str,
        request: Request,
    ) -> JSONResponse:
        request_id = str(getattr(request.state, "request_id", uuid4()))
        try:
            payload = await request.json()
        except ValueError:
            return _error_response(400, code="INVALID_JSON", message="request body is not valid JSON", request_id=request_id)
        result = await reconciler.call(slug, payload, organization_id, environment_id)
        if result.status == "validationError":
            return _error_response(
                400,
                code="VALIDATION_ERROR",
                message="workflow metadata is invalid",
                request_id=request_id,
                details=[asdict(issue) for issue in result.errors],
            )
        return JSONResponse(status_code=200, content={"status": result.status, "workflow_id": result.workflow_id})

    @app.get("/health")
    async def health() -> JSONResponse:
        return JSONResponse(
            status_code=200,
            content={"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()},
        )

    return app


def _error_response(
    status_code: int,
    *,
    code: str,
    message: str,
    request_id: str,
    details: Any = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                "details": details,
                "request_id": request_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        },
    )


def _parse_uuid(value: str) -> UUID | None:
    try:
        return UUID(value)
    except ValueError:
        return None
