"""Turn transport requests into NormalizedRequest values."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from typing import Any

from starlette.requests import Request

from hookline.triggers.webhook.types import NormalizedRequest


def normalize_request(
    method: str,
    url: str,
    headers: Mapping[str, str] | Iterable[tuple[str, str]],
    body: bytes,
) -> NormalizedRequest:
    """Build a NormalizedRequest; repeated headers keep the last value."""
    pairs = headers.items() if isinstance(headers, Mapping) else headers
    normalized: dict[str, str] = {}
    for name, value in pairs:
        normalized[name.lower()] = value
    return NormalizedRequest(
        method=method.upper(),
        url=url,
        headers=normalized,
        raw_body=bytes(body),
        body=_parse_body(body),
    )


async def from_starlette(request: Request) -> NormalizedRequest:
    """Read the exact request bytes once and normalize."""
    raw_body = await request.body()
    pairs = [(key.decode("latin-1"), value.decode("latin-1")) for key, value in request.headers.raw]
    return normalize_request(request.method, str(request.url), pairs, raw_body)


def _parse_body(body: bytes) -> Any:
    if not body:
        return None
    try:
        return json.loads(body)
    except (UnicodeDecodeError, ValueError):
        return None
