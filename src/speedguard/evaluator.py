"""Pure speed-versus-limit evaluation."""

from __future__ import annotations

from speedguard.models.limit import SpeedLimit
from speedguard.models.sample import Sample
from speedguard.models.verdict import NoViolation, Verdict, Violation
from speedguard.normalize import clamp_non_negative


def evaluate(sample: Sample, limit: SpeedLimit | float, *, subject: str) -> Verdict:
    """Compare *sample* against *limit*.

    A violation requires the speed to be strictly above the limit; being
    exactly at the limit is allowed. With a ``0`` limit any motion is a
    violation.
    """
    limit_kmh = limit.kmh if isinstance(limit, SpeedLimit) else clamp_non_negative(float(limit))
    speed_kmh = clamp_non_negative(sample.speed_kmh)
    if speed_kmh > limit_kmh:
        return Violation(
            subject=subject,
            speed_kmh=speed_kmh,
            limit_kmh=limit_kmh,
            timestamp=sample.timestamp,
        )
    return NoViolation()
