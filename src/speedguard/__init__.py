"""speedguard - Async speed limit violation monitor."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("speedguard")
except PackageNotFoundError:
    __version__ = "0+local"
from speedguard.config import MonitorConfig, MqttSettings
from speedguard.controller import MonitorController
from speedguard.dispatch import AlertDispatcher, HttpAlertLog, LoggingNotificationSink
from speedguard.evaluator import evaluate
from speedguard.exceptions import (
    ConfigUnavailableError,
    DispatchError,
    PermissionDeniedError,
    SampleTimeoutError,
    SampleUnavailableError,
    SpeedGuardConfigError,
    SpeedGuardError,
    SpeedGuardTransportError,
)
from speedguard.limits import LimitStore
from speedguard.models import (
    AlertChannel,
    AlertRecord,
    Condition,
    ConditionKind,
    CycleOutcome,
    DispatchFailure,
    DispatchReport,
    MonitorState,
    NoViolation,
    NotificationPriority,
    NotificationRequest,
    OutcomeStatus,
    Sample,
    SpeedLimit,
    Violation,
)
from speedguard.monitor import SpeedMonitor
from speedguard.normalize import mps_to_kmh
from speedguard.position import PositionSource, StaticPermissionGate

__all__ = [
    "__version__",
    "AlertChannel",
    "AlertDispatcher",
    "AlertRecord",
    "Condition",
    "ConditionKind",
    "ConfigUnavailableError",
    "CycleOutcome",
    "DispatchError",
    "DispatchFailure",
    "DispatchReport",
    "HttpAlertLog",
    "LimitStore",
    "LoggingNotificationSink",
    "MonitorConfig",
    "MonitorController",
    "MonitorState",
    "MqttSettings",
    "NoViolation",
    "NotificationPriority",
    "NotificationRequest",
    "OutcomeStatus",
    "PermissionDeniedError",
    "PositionSource",
    "Sample",
    "SampleTimeoutError",
    "SampleUnavailableError",
    "SpeedGuardConfigError",
    "SpeedGuardError",
    "SpeedGuardTransportError",
    "SpeedLimit",
    "SpeedMonitor",
    "StaticPermissionGate",
    "Violation",
    "evaluate",
    "mps_to_kmh",
]
