from __future__ import annotations

from datetime import UTC, datetime

import pytest

from speedguard.evaluator import evaluate
from speedguard.models.limit import SpeedLimit
from speedguard.models.sample import Sample
from speedguard.models.verdict import NoViolation, Violation
from speedguard.normalize import mps_to_kmh

_TS = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


def _sample(speed_kmh: float) -> Sample:
    return Sample(speed_kmh=speed_kmh, raw_speed_mps=speed_kmh / 3.6, timestamp=_TS)


class TestMpsToKmh:
    @pytest.mark.parametrize("mps", [0.0, 1.0, 2.5, 13.89, 25.0, 33.333, 1e6])
    def test_exact_scaling(self, mps: float) -> None:
        assert mps_to_kmh(mps) == mps * 3.6

    def test_reference_values(self) -> None:
        assert mps_to_kmh(25.0) == 90.0
        assert mps_to_kmh(1.0) == 3.6

    @pytest.mark.parametrize("mps", [-0.01, -3.0])
    def test_negative_clamped_to_zero(self, mps: float) -> None:
        assert mps_to_kmh(mps) == 0.0


class TestEvaluate:
    @pytest.mark.parametrize("speed", [0.0, 45.5, 79.99, 80.0])
    def test_at_or_below_limit_is_not_violation(self, speed: float) -> None:
        assert isinstance(evaluate(_sample(speed), 80.0, subject="renter_123"), NoViolation)

    @pytest.mark.parametrize("speed", [80.0001, 90.0, 250.0])
    def test_above_limit_carries_exact_speed(self, speed: float) -> None:
        verdict = evaluate(_sample(speed), 80.0, subject="renter_123")
        assert isinstance(verdict, Violation)
        assert verdict.speed_kmh == speed
        assert verdict.limit_kmh == 80.0
        assert verdict.subject == "renter_123"
        assert verdict.timestamp == _TS

    def test_zero_limit_flags_any_motion(self) -> None:
        assert isinstance(evaluate(_sample(0.1), 0.0, subject="s"), Violation)
        assert isinstance(evaluate(_sample(0.0), 0.0, subject="s"), NoViolation)

    def test_accepts_speed_limit_model(self) -> None:
        limit = SpeedLimit(subject="renter_123", kmh=80.0)
        verdict = evaluate(_sample(90.0), limit, subject="renter_123")
        assert isinstance(verdict, Violation)
        assert verdict.limit_kmh == 80.0

    def test_verdict_flags(self) -> None:
        assert NoViolation().is_violation is False
        assert evaluate(_sample(90.0), 80.0, subject="s").is_violation is True
