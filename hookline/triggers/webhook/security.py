"""Keep webhook secrets, provider tokens and signatures out of log output."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

MASK = "***"

_SENSITIVE_KEY_MARKERS = ("secret", "token", "signature", "authorization", "cookie", "password", "api_key", "apikey")

_TEXT_RULES: tuple[tuple[re.Pattern[str], Any], ...] = (
    (
        re.compile(r"(?i)\b(password|token|api[_-]?key|secret|verify_token)\b(\s*[:=]\s*)[^\s,;&]+"),
        lambda match: f"{match.group(1)}{match.group(2)}{MASK}",
    ),
    (re.compile(r"(?i)\bbearer\s+\S+"), f"Bearer {MASK}"),
    (re.compile(r"(?i)\b(sha1|sha256|sha512)=[0-9a-f]+"), lambda match: f"{match.group(1)}={MASK}"),
)


def is_sensitive_key(name: Any) -> bool:
    lowered = str(name).lower()
    return any(marker in lowered for marker in _SENSITIVE_KEY_MARKERS)


def redact_sensitive_text(text: str) -> str:
    """Mask key=value credentials, bearer tokens and HMAC digests in free text."""
    for pattern, replacement in _TEXT_RULES:
        text = pattern.sub(replacement, text)
    return text


def redact_sensitive_data(value: Any) -> Any:
    """Recursively mask values under sensitive keys, and credential text elsewhere."""
    if isinstance(value, Mapping):
        return {key: MASK if is_sensitive_key(key) else redact_sensitive_data(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return type(value)(redact_sensitive_data(item) for item in value)
    if isinstance(value, str):
        return redact_sensitive_text(value)
    return value


class SensitiveDataLogFilter(logging.Filter):
    """Render each record with redacted arguments, then redact the rendered text."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.args:
            record.args = redact_sensitive_data(record.args)
        try:
            message = record.getMessage()
        except (TypeError, ValueError, KeyError):
            message = f"{record.msg} {record.args!r}"
        record.msg = redact_sensitive_text(message)
        record.args = ()
        return True


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Set the hookline logger level and attach the redaction filter to its handlers once.

    Logger filters only see records created on that exact logger, so the filter
    sits on the handlers where records from ``hookline.*`` children arrive.
    """
    root = logging.getLogger("hookline")
    root.setLevel(level.upper())
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        root.addHandler(handler)
    for handler in root.handlers:
        if not any(isinstance(item, SensitiveDataLogFilter) for item in handler.filters):
            handler.addFilter(SensitiveDataLogFilter())
    return root
