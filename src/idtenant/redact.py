"""Masking of secret fields before anything reaches a log or error message.

Login payloads carry answers, passwords and client secrets. Whenever a
payload is quoted in a diagnostic it passes through :func:`excerpt`, which
masks those keys (at any depth) and truncates the result.
"""

from __future__ import annotations

import json
from typing import Any

MASK = "***"
"""Replacement text for masked values."""

MAX_EXCERPT = 200
"""Longest payload excerpt quoted in messages."""

SENSITIVE_KEYS = frozenset(
    {"answer", "password", "secret", "client_secret", "samlresponse", "code", "token"}
)


def is_sensitive(key: str) -> bool:
    return key.lower() in SENSITIVE_KEYS


def mask(data: Any) -> Any:
    """Return a copy of *data* with sensitive keys replaced by :data:`MASK`."""
    if isinstance(data, dict):
        return {
            k: MASK if isinstance(k, str) and is_sensitive(k) else mask(v)
            for k, v in data.items()
        }
    if isinstance(data, list):
        return [mask(item) for item in data]
    return data


def excerpt(payload: Any, limit: int = MAX_EXCERPT) -> str:
    """Render *payload* for a message: masked, compact and truncated.

    Strings are parsed as JSON when possible. A string that is not JSON is
    quoted only up to *limit* characters since it cannot be masked by key.
    """
    if payload is None:
        return ""
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except (json.JSONDecodeError, TypeError):
            text = payload
        else:
            text = json.dumps(mask(payload), separators=(",", ":"), default=str)
    else:
        text = json.dumps(mask(payload), separators=(",", ":"), default=str)
    if len(text) > limit:
        return text[:limit] + "..."
    return text
