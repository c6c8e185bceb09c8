"""Normalization helpers.

Centralizes defensive parsing of config values and raw position fixes.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Any

from speedguard._constants import MPS_TO_KMH


def safe_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool) or value == "" or value == "--":
        return None
    try:
        result = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def clamp_non_negative(value: float) -> float:
    """Clamp sensor noise below zero to ``0.0``."""
    return 0.0 if value < 0 else value


def mps_to_kmh(mps: float) -> float:
    """Convert meters/second to km/h with the exact factor 3.6.

    Negative inputs are clamped to 0 before conversion.
    """
    return clamp_non_negative(mps) * MPS_TO_KMH


def parse_limit_value(value: Any) -> float | None:
    """Extract a speed limit in km/h from a config service value.

    Accepts bare numbers, numeric strings and ``{"limit": n}`` /
    ``{"value": n}`` objects. Negative or non-numeric values yield ``None``.
    """
    if isinstance(value, dict):
        for key in ("limit", "value", "speedLimit"):
            if key in value:
                return parse_limit_value(value[key])
        return None
    parsed = safe_float(value)
    if parsed is None or parsed < 0:
        return None
    return parsed


def normalize_timestamp(value: Any) -> datetime | None:
    """Convert an epoch value (seconds or milliseconds) or datetime to UTC.

    - Empty/missing -> None
    - <= 0 -> None
    - Milliseconds (> 1e11) -> seconds
    """
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    ts = safe_float(value)
    if ts is None or ts <= 0:
        return None
    if ts > 1e11:
        ts /= 1000.0
    return datetime.fromtimestamp(ts, tz=UTC)
