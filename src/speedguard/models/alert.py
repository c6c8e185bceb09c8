"""Alert record, notification request and dispatch report models."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

from speedguard.models._base import FrozenModel, Subject, UtcDatetime, utcnow


class AlertChannel(StrEnum):
    ALERT_LOG = "alert_log"
    NOTIFICATION = "notification"


class NotificationPriority(StrEnum):
    DEFAULT = "default"
    HIGH = "high"


class AlertRecord(FrozenModel):
    """Append-only alert log entry.

    Serialized with camelCase keys and ``createdAt`` as epoch
    milliseconds, see :meth:`to_wire`.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    subject: Subject
    speed_kmh: float = Field(ge=0)
    message: str
    created_at: UtcDatetime = Field(default_factory=utcnow)

    @field_serializer("created_at", when_used="json")
    def _serialize_created_at(self, value: Any) -> int:
        return int(value.timestamp() * 1000)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class NotificationRequest(FrozenModel):
    channel_id: str
    title: str
    body: str
    priority: NotificationPriority = NotificationPriority.HIGH
    dedup_key: str
    notification_id: int


class DispatchFailure(FrozenModel):
    channel: AlertChannel
    reason: str


class DispatchReport(FrozenModel):
    """What happened to each alert channel for one verdict."""

    alert_id: str | None = None
    delivered: frozenset[AlertChannel] = frozenset()
    suppressed: frozenset[AlertChannel] = frozenset()
    failures: tuple[DispatchFailure, ...] = ()

    @property
    def attempted(self) -> bool:
        return bool(self.delivered or self.failures)

    def is_delivered(self, channel: AlertChannel) -> bool:
        return channel in self.delivered
