"""Position sample model."""

from __future__ import annotations

from pydantic import Field

from speedguard.models._base import FrozenModel, UtcDatetime, utcnow


class Sample(FrozenModel):
    """One speed observation.

    ``speed_kmh`` is already converted and clamped; ``raw_speed_mps`` is
    what the sensor reported.
    """

    speed_kmh: float = Field(ge=0)
    raw_speed_mps: float
    timestamp: UtcDatetime = Field(default_factory=utcnow)
    latitude: float | None = None
    longitude: float | None = None
    provider: str = "gps"
