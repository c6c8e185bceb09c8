"""Evaluation verdicts."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import Field

from speedguard.models._base import FrozenModel, Subject, UtcDatetime


class NoViolation(FrozenModel):
    kind: Literal["no_violation"] = "no_violation"

    @property
    def is_violation(self) -> bool:
        return False


class Violation(FrozenModel):
    """Observed speed exceeded the limit."""

    kind: Literal["violation"] = "violation"
    subject: Subject
    speed_kmh: float = Field(ge=0)
    limit_kmh: float = Field(ge=0)
    timestamp: UtcDatetime

    @property
    def is_violation(self) -> bool:
        return True


Verdict = Annotated[NoViolation | Violation, Field(discriminator="kind")]
