"""Redaction of config service credentials in debug logs.

The only secrets that reach a request are the ``auth`` query parameter and
an MQTT ``password``; everything else (subjects, speeds, alert bodies) is
logged as-is, with long strings cut short.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_SECRET_KEYS: frozenset[str] = frozenset({"auth", "password"})
_REDACTED = "<redacted>"


def redact_for_log(value: Any, *, max_string: int = 256) -> Any:
    """Return a copy of *value* with secret keys masked."""
    if isinstance(value, Mapping):
        return {
            str(key): _REDACTED if str(key).lower() in _SECRET_KEYS else redact_for_log(item, max_string=max_string)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact_for_log(item, max_string=max_string) for item in value]
    if isinstance(value, str) and len(value) > max_string:
        return f"{value[:max_string]}…<truncated>"
    return value
