"""Typed models for limits, samples, verdicts, alerts and cycle outcomes."""

from speedguard.models.alert import (
    AlertChannel,
    AlertRecord,
    DispatchFailure,
    DispatchReport,
    NotificationPriority,
    NotificationRequest,
)
from speedguard.models.limit import SpeedLimit
from speedguard.models.outcome import (
    Condition,
    ConditionKind,
    CycleOutcome,
    MonitorState,
    OutcomeStatus,
)
from speedguard.models.sample import Sample
from speedguard.models.verdict import NoViolation, Verdict, Violation

__all__ = [
    "AlertChannel",
    "AlertRecord",
    "Condition",
    "ConditionKind",
    "CycleOutcome",
    "DispatchFailure",
    "DispatchReport",
    "MonitorState",
    "NoViolation",
    "NotificationPriority",
    "NotificationRequest",
    "OutcomeStatus",
    "Sample",
    "SpeedLimit",
    "Verdict",
    "Violation",
]
