"""Structured cycle outcome reported to the external trigger."""

from __future__ import annotations

from enum import StrEnum

from speedguard.models._base import FrozenModel, Subject
from speedguard.models.alert import AlertChannel, DispatchReport
from speedguard.models.limit import SpeedLimit
from speedguard.models.sample import Sample
from speedguard.models.verdict import NoViolation, Violation


class MonitorState(StrEnum):
    IDLE = "idle"
    FETCHING_LIMIT = "fetching_limit"
    SAMPLING_POSITION = "sampling_position"
    EVALUATING = "evaluating"
    DISPATCHING = "dispatching"
    DONE = "done"
    FAILED = "failed"


class OutcomeStatus(StrEnum):
    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"
    FATAL = "fatal"


class ConditionKind(StrEnum):
    CONFIG_UNAVAILABLE = "config_unavailable"
    SAMPLE_TIMEOUT = "sample_timeout"
    SAMPLE_UNAVAILABLE = "sample_unavailable"
    PERMISSION_DENIED = "permission_denied"
    DISPATCH_FAILURE = "dispatch_failure"
    CYCLE_IN_PROGRESS = "cycle_in_progress"


FATAL_CONDITIONS: frozenset[ConditionKind] = frozenset({ConditionKind.PERMISSION_DENIED})


class Condition(FrozenModel):
    """A degraded or failed step recorded during a cycle."""

    kind: ConditionKind
    message: str = ""
    channel: AlertChannel | None = None

    @property
    def is_fatal(self) -> bool:
        return self.kind in FATAL_CONDITIONS


class CycleOutcome(FrozenModel):
    """Result of one ``run(subject)`` invocation."""

    subject: Subject
    state: MonitorState
    states: tuple[MonitorState, ...] = ()
    conditions: tuple[Condition, ...] = ()
    limit: SpeedLimit | None = None
    sample: Sample | None = None
    verdict: NoViolation | Violation | None = None
    dispatch: DispatchReport | None = None

    @property
    def status(self) -> OutcomeStatus:
        if any(c.is_fatal for c in self.conditions):
            return OutcomeStatus.FATAL
        if self.conditions:
            return OutcomeStatus.PARTIAL_FAILURE
        return OutcomeStatus.SUCCESS

    @property
    def reason(self) -> str | None:
        """Human-readable summary of recorded conditions, ``None`` on success."""
        if not self.conditions:
            return None
        return "; ".join(f"{c.kind}: {c.message}" if c.message else str(c.kind) for c in self.conditions)

    def has_condition(self, kind: ConditionKind) -> bool:
        return any(c.kind == kind for c in self.conditions)
