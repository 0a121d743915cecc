"""Redaction helpers for safe logging.

Tenant phone numbers, emails and message bodies must never reach the logs.
Identifiers that are useful for tracing are logged as short hashes instead.
"""

import hashlib
import re
from typing import Any

# Covers local (0812...), international (+62 812-...) and whatsapp: prefixed numbers
_PHONE_PATTERN = re.compile(r"(?:whatsapp:)?\+?\d[\d\s\-.()]{7,}\d")
_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

_REDACTED = "[REDACTED]"


def hash_identifier(value: str) -> str:
    """Non-reversible short hash (first 12 hex chars of sha256)."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:12]


def redact_string(value: str) -> str:
    """Redact phone and email patterns from a string."""
    result = _PHONE_PATTERN.sub(_REDACTED, value)
    result = _EMAIL_PATTERN.sub(_REDACTED, result)
    return result


def redact_value(value: Any) -> str:
    """Redact any value for safe logging. Returns string representation."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, dict):
        # keys only, never values
        return f"dict(keys={list(value.keys())})"
    if isinstance(value, (list, tuple)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def safe_log_context(**kwargs: Any) -> dict[str, str]:
    """Build a context dict safe for logging. All values are redacted."""
    return {k: redact_value(v) for k, v in kwargs.items()}
