"""Outbound provider API client used to register webhooks."""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any

import httpx

from hookline.triggers.webhook.errors import ProviderAPIError

logger = logging.getLogger(__name__)


class ProviderApiClient:
    """Bearer-token HTTP client with an explicit start/close lifecycle.

    One instance is owned by the application container and shared by every
    integration; nothing here is cached at module level.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        user_agent: str = "hookline",
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._transport = transport
        self._user_agent = user_agent
        self._client: httpx.AsyncClient | None = None

    @property
    def started(self) -> bool:
        return self._client is not None

    async def start(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            timeout=self._timeout_seconds,
            transport=self._transport,
            headers={"User-Agent": self._user_agent},
        )

    async def close(self) -> None:
        if self._client is None:
            return
        await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> ProviderApiClient:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def post_json(
        self,
        url: str,
        *,
        access_token: str,
        json: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """POST a JSON body; any non-2xx response raises ProviderAPIError."""
        if self._client is None:
            raise RuntimeError("ProviderApiClient.start() must be called before use")
        request_headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {access_token}",
            **(headers or {}),
        }
        response = await self._client.post(url, json=json, headers=request_headers)
        if not response.is_success:
            logger.warning("provider call to %s failed with %s", url, response.status_code)
            raise ProviderAPIError(response.status_code, response.reason_phrase or "")
        return _safe_json(response)


def _safe_json(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {"text": response.text}
    return data if isinstance(data, dict) else {"data": data}
