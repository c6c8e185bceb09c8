"""Single-shot position sampling."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any, Protocol

from speedguard.exceptions import PermissionDeniedError, SampleTimeoutError, SampleUnavailableError
from speedguard.models.sample import Sample
from speedguard.normalize import mps_to_kmh, normalize_timestamp, safe_float

_logger = logging.getLogger(__name__)


class PositionProvider(Protocol):
    """Positioning capability yielding one raw fix per call.

    Each call waits for a fix belonging to *subject*. The fix is a mapping
    with ``speed`` in m/s and optional ``latitude``, ``longitude`` and
    ``time`` (epoch seconds or milliseconds).
    Implementations may raise :class:`PermissionDeniedError`.
    """

    async def request_once(self, subject: str, provider: str, timeout: float) -> Mapping[str, Any]:
        ...


class PermissionGate(Protocol):
    def has_location_permission(self) -> bool:
        ...


class StaticPermissionGate:
    """Permission answer fixed at construction (e.g. from configuration)."""

    def __init__(self, granted: bool) -> None:
        self._granted = granted

    def has_location_permission(self) -> bool:
        return self._granted


def _first(fix: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = fix.get(key)
        if value is not None:
            return value
    return None


def sample_from_fix(fix: Mapping[str, Any], *, provider: str) -> Sample:
    """Build a :class:`Sample` from a raw fix, converting m/s to km/h."""
    raw_speed = safe_float(_first(fix, "speed", "speedMps", "speed_mps"))
    if raw_speed is None:
        raise SampleUnavailableError(f"Position fix from {provider!r} carries no speed")

    timestamp = normalize_timestamp(_first(fix, "time", "timestamp", "gpsTime"))
    kwargs: dict[str, Any] = {}
    if timestamp is not None:
        kwargs["timestamp"] = timestamp

    return Sample(
        speed_kmh=mps_to_kmh(raw_speed),
        raw_speed_mps=raw_speed,
        latitude=safe_float(_first(fix, "latitude", "lat")),
        longitude=safe_float(_first(fix, "longitude", "lng", "lon")),
        provider=provider,
        **kwargs,
    )


class PositionSource:
    """Requests exactly one speed sample per call, bounded by a timeout."""

    def __init__(
        self,
        provider: PositionProvider,
        permission: PermissionGate,
        *,
        provider_name: str = "gps",
        timeout: float = 30.0,
    ) -> None:
        self._provider = provider
        self._permission = permission
        self._provider_name = provider_name
        self._timeout = timeout

    async def request_sample(self, subject: str, timeout: float | None = None) -> Sample:
        """Return one sample observed for *subject*.

        Raises
        ------
        PermissionDeniedError
            Location permission is missing.
        SampleTimeoutError
            No fix arrived within *timeout* seconds.
        SampleUnavailableError
            The fix carried no usable speed.
        """
        if not self._permission.has_location_permission():
            raise PermissionDeniedError("Location permission is not granted")

        effective_timeout = timeout if timeout is not None else self._timeout
        try:
            fix = await asyncio.wait_for(
                self._provider.request_once(subject, self._provider_name, effective_timeout),
                effective_timeout,
            )
        except TimeoutError as exc:
            raise SampleTimeoutError(
                f"No position fix for {subject!r} from {self._provider_name!r} within {effective_timeout}s",
                timeout=effective_timeout,
            ) from exc

        sample = sample_from_fix(fix, provider=self._provider_name)
        _logger.debug("Current speed for %s: %s km/h (raw %s m/s)", subject, sample.speed_kmh, sample.raw_speed_mps)
        return sample
