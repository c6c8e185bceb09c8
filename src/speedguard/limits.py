"""Speed limit acquisition from the remote config service.

Endpoint:
  - GET /speed_limits/{subject}
"""

from __future__ import annotations

import asyncio
import logging
from urllib.parse import quote

from speedguard._constants import FAIL_SAFE_LIMIT_KMH, LIMITS_PATH
from speedguard._transport import Transport
from speedguard.exceptions import ConfigUnavailableError, SpeedGuardTransportError
from speedguard.models._base import validate_subject
from speedguard.models.limit import SpeedLimit
from speedguard.normalize import parse_limit_value

_logger = logging.getLogger(__name__)


def limit_path(subject: str) -> str:
    return f"{LIMITS_PATH}/{quote(subject, safe='')}"


class LimitStore:
    """Reads the current speed limit per subject and caches it for one cycle.

    The cache is the only state shared between cycles; callers invalidate
    the subject's entry before every fetch.
    """

    def __init__(self, transport: Transport, *, timeout: float = 5.0) -> None:
        self._transport = transport
        self._timeout = timeout
        self._cache: dict[str, SpeedLimit] = {}

    def cached(self, subject: str) -> SpeedLimit | None:
        return self._cache.get(subject)

    def invalidate(self, subject: str | None = None) -> None:
        """Drop the cached limit for *subject*, or for every subject."""
        if subject is None:
            self._cache.clear()
        else:
            self._cache.pop(subject, None)

    async def _read_remote(self, subject: str) -> float:
        path = limit_path(subject)
        try:
            value = await asyncio.wait_for(self._transport.get_json(path), self._timeout)
        except TimeoutError as exc:
            raise ConfigUnavailableError(
                f"Speed limit read timed out after {self._timeout}s",
                subject=subject,
            ) from exc
        except SpeedGuardTransportError as exc:
            raise ConfigUnavailableError(f"Speed limit read failed: {exc}", subject=subject) from exc

        if value is None:
            raise ConfigUnavailableError("No speed limit configured", subject=subject)
        limit = parse_limit_value(value)
        if limit is None:
            raise ConfigUnavailableError(f"Unusable speed limit value {value!r}", subject=subject)
        return limit

    async def fetch_limit(self, subject: str) -> SpeedLimit:
        """Fetch, cache and return the limit for *subject*.

        Never raises for remote problems: the fail-safe ``0 km/h`` limit is
        returned with ``is_fallback=True`` instead, so any motion is flagged.
        """
        subject = validate_subject(subject)
        try:
            kmh = await self._read_remote(subject)
        except ConfigUnavailableError as exc:
            _logger.warning("Speed limit unavailable for %s, using %s km/h: %s", subject, FAIL_SAFE_LIMIT_KMH, exc)
            limit = SpeedLimit(subject=subject, kmh=FAIL_SAFE_LIMIT_KMH, is_fallback=True, reason=str(exc))
        else:
            _logger.debug("Updated speed limit for %s: %s km/h", subject, kmh)
            limit = SpeedLimit(subject=subject, kmh=kmh)

        self._cache[subject] = limit
        return limit
