"""HMAC-SHA256 signing and constant-time verification over raw bodies."""

from __future__ import annotations

import hashlib
import hmac


def compute_signature(secret: str, raw_body: bytes) -> str:
    """Return the hex HMAC-SHA256 digest of raw_body keyed by secret."""
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_signature(secret: str, raw_body: bytes, provided: str | None, *, prefix: str = "") -> bool:
    """Check a provided signature against the expected digest.

    Comparison is constant time over bytes. Missing values and values of a
    different length fail closed.
    """
    if not secret or provided is None:
        return False
    expected = f"{prefix}{compute_signature(secret, raw_body)}".encode("ascii")
    candidate = provided.strip().encode("utf-8")
    return hmac.compare_digest(expected, candidate)
