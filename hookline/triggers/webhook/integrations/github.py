"""GitHub repository and organization webhooks."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError
from ulid import ULID

from hookline.triggers.webhook.errors import InvalidSource, ProviderAPIError
from hookline.triggers.webhook.integrations.base import TRANSPORT_HEADERS, strip_headers
from hookline.triggers.webhook.registration import ProviderApiClient
from hookline.triggers.webhook.schemas import (
    GitHubRepositorySource,
    GitHubSource,
    describe_validation_error,
    github_source_adapter,
)
from hookline.triggers.webhook.signature import verify_signature
from hookline.triggers.webhook.types import (
    CanonicalEvent,
    HandledWebhook,
    NormalizedRequest,
    RegistrationError,
    RegistrationResult,
    WebhookError,
    WebhookIgnored,
    WebhookOk,
    WebhookRegistrationConfig,
)

logger = logging.getLogger(__name__)

EVENT_HEADER = "x-github-event"
DELIVERY_HEADER = "x-github-delivery"
SIGNATURE_HEADER = "x-hub-signature-256"
LEGACY_SIGNATURE_HEADER = "x-hub-signature"

_CONTEXT_EXCLUDED = TRANSPORT_HEADERS | {EVENT_HEADER, DELIVERY_HEADER, SIGNATURE_HEADER, LEGACY_SIGNATURE_HEADER}


class GitHubWebhookIntegration:
    """Webhook integration for github.com repositories and organizations."""

    service = "github"

    def __init__(
        self,
        client: ProviderApiClient,
        *,
        api_base_url: str = "https://api.github.com",
        api_version: str = "2022-11-28",
    ) -> None:
        self._client = client
        self._api_base_url = api_base_url.rstrip("/")
        self._api_version = api_version

    def key_for_source(self, source: Any) -> str:
        parsed = _parse_source(source)
        if isinstance(parsed, GitHubRepositorySource):
            return f"repository.{parsed.repo}"
        return f"organization.{parsed.org}"

    async def register_webhook(self, config: WebhookRegistrationConfig, source: Any) -> RegistrationResult:
        parsed = _parse_source(source)
        if isinstance(parsed, GitHubRepositorySource):
            url = f"{self._api_base_url}/repos/{parsed.repo}/hooks"
        else:
            url = f"{self._api_base_url}/orgs/{parsed.org}/hooks"
        body = {
            "name": "web",
            "active": True,
            "events": parsed.events,
            "config": {
                "url": config.callback_url,
                "content_type": config.content_type,
                "secret": config.secret,
                "insecure_ssl": "1" if config.insecure_ssl else "0",
            },
        }
        try:
            data = await self._client.post_json(
                url,
                access_token=config.access_token,
                json=body,
                headers={"Accept": "application/vnd.github+json", "X-GitHub-Api-Version": self._api_version},
            )
        except ProviderAPIError as exc:
            return RegistrationResult(
                ok=False,
                error=RegistrationError(
                    message=f"Failed to register webhook: {exc.status_text}",
                    status_code=exc.status_code,
                ),
            )
        return RegistrationResult(ok=True, data=data)

    def handle_webhook_request(self, request: NormalizedRequest, *, secret: str | None) -> HandledWebhook:
        delivery_id = request.header(DELIVERY_HEADER) or str(ULID())
        signature = request.header(SIGNATURE_HEADER)
        if secret and signature:
            logger.debug("[%s] verifying github signature", delivery_id)
            if not verify_signature(secret, request.raw_body, signature, prefix="sha256="):
                return WebhookError(
                    message=(
                        "GitHubWebhookIntegration: Could not verify webhook payload, invalid signature "
                        f"or secret. [deliveryId = {delivery_id}]"
                    )
                )
        event = request.header(EVENT_HEADER)
        if not event:
            return WebhookIgnored(reason=f"github delivery {delivery_id} has no {EVENT_HEADER} header")
        return WebhookOk(
            events=[
                CanonicalEvent(
                    id=delivery_id,
                    payload=request.body,
                    name=event,
                    context=strip_headers(request.headers, _CONTEXT_EXCLUDED),
                )
            ]
        )


def _parse_source(source: Any) -> GitHubSource:
    try:
        return github_source_adapter.validate_python(source)
    except ValidationError as exc:
        raise InvalidSource("github", describe_validation_error(exc)) from exc
