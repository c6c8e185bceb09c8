"""Speed limit model."""

from __future__ import annotations

from pydantic import Field

from speedguard.models._base import FrozenModel, Subject, UtcDatetime, utcnow


class SpeedLimit(FrozenModel):
    """Speed limit in effect for one monitoring cycle.

    Parameters
    ----------
    subject : str
        Tracked subject the limit applies to.
    kmh : float
        Limit in km/h, never negative.
    fetched_at : datetime
        When the value was read (UTC).
    is_fallback : bool
        ``True`` when the config service had no usable value and the
        fail-safe ``0`` was substituted.
    reason : str or None
        Why the fallback was used.
    """

    subject: Subject
    kmh: float = Field(ge=0)
    fetched_at: UtcDatetime = Field(default_factory=utcnow)
    is_fallback: bool = False
    reason: str | None = None
