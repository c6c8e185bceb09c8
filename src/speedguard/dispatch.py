"""Dual-channel alert dispatch with per-subject dedup.

Channels:
  - alert log: durable, append-only (``PUT /alerts/{alert_id}``)
  - notification: local user-facing display
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Protocol
from urllib.parse import quote

from speedguard._constants import (
    ALERT_MESSAGE,
    ALERTS_PATH,
    NOTIFICATION_CHANNEL_ID,
    NOTIFICATION_CHANNEL_NAME,
    NOTIFICATION_ID,
    NOTIFICATION_TITLE,
    notification_body,
)
from speedguard._transport import Transport
from speedguard.exceptions import DispatchError, SpeedGuardTransportError
from speedguard.models._base import utcnow
from speedguard.models.alert import (
    AlertChannel,
    AlertRecord,
    DispatchFailure,
    DispatchReport,
    NotificationPriority,
    NotificationRequest,
)
from speedguard.models.verdict import NoViolation, Violation

_logger = logging.getLogger(__name__)

_ALERT_ID_NAMESPACE = uuid.UUID("5b0d6a4e-2f7c-4c1e-9d8a-7f3b1e6c2a90")


class AlertLog(Protocol):
    async def append(self, alert_id: str, record: AlertRecord) -> None:
        ...


class NotificationSink(Protocol):
    async def ensure_channel(self, channel_id: str, name: str, priority: NotificationPriority) -> None:
        ...

    async def display(self, request: NotificationRequest) -> None:
        ...


class HttpAlertLog:
    """Durable alert log on the REST key/value store.

    Records are written with ``PUT`` under a deterministic id, so a retried
    write of the same alert does not create a second record.
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    async def append(self, alert_id: str, record: AlertRecord) -> None:
        path = f"{ALERTS_PATH}/{quote(alert_id, safe='')}"
        try:
            await self._transport.put_json(path, record.to_wire())
        except SpeedGuardTransportError as exc:
            raise DispatchError(f"Alert log write failed: {exc}", channel=AlertChannel.ALERT_LOG) from exc
        _logger.debug("Alert %s appended for %s", alert_id, record.subject)


class LoggingNotificationSink:
    """Shows notifications on the console through the ``speedguard.notifications`` logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("speedguard.notifications")
        self._channels: dict[str, str] = {}

    async def ensure_channel(self, channel_id: str, name: str, priority: NotificationPriority) -> None:
        self._channels.setdefault(channel_id, name)

    async def display(self, request: NotificationRequest) -> None:
        level = logging.WARNING if request.priority == NotificationPriority.HIGH else logging.INFO
        channel_name = self._channels.get(request.channel_id, request.channel_id)
        self._logger.log(level, "[%s] %s %s", channel_name, request.title, request.body)


class DedupLedger:
    """Rolling per-(subject, channel) window of the last delivered alert."""

    def __init__(self, window: float) -> None:
        self._window = window
        self._last: dict[tuple[str, AlertChannel], datetime] = {}

    def claim(self, subject: str, channel: AlertChannel, at: datetime) -> tuple[bool, datetime | None]:
        """Reserve the slot for *at* unless a delivery falls within the window.

        Returns ``(claimed, previous)``; pass *previous* to :meth:`release`
        when the delivery fails so the next violation retries the channel.
        """
        key = (subject, channel)
        previous = self._last.get(key)
        if previous is not None and abs((at - previous).total_seconds()) < self._window:
            return False, previous
        self._last[key] = at
        return True, previous

    def release(self, subject: str, channel: AlertChannel, previous: datetime | None) -> None:
        key = (subject, channel)
        if previous is None:
            self._last.pop(key, None)
        else:
            self._last[key] = previous


def dedup_key(subject: str, at: datetime, window: float) -> str:
    """Key of the dedup bucket *at* falls into for *subject*."""
    ts = at.timestamp()
    bucket = int(ts // window) if window > 0 else ts
    return f"{subject}:{bucket}"


def alert_id_for(key: str) -> str:
    return str(uuid.uuid5(_ALERT_ID_NAMESPACE, key))


class AlertDispatcher:
    """Sends a violation to the alert log and the notification sink.

    The two channels are attempted concurrently and independently: an
    exception in one is reported in the :class:`DispatchReport` and never
    prevents the other.
    """

    def __init__(
        self,
        alert_log: AlertLog,
        notifier: NotificationSink,
        *,
        dedup_window: float = 60.0,
        timeout: float = 10.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._alert_log = alert_log
        self._notifier = notifier
        self._window = dedup_window
        self._timeout = timeout
        self._clock = clock
        self._ledger = DedupLedger(dedup_window)
        self._registered_channels: set[str] = set()

    def build_record(self, violation: Violation) -> AlertRecord:
        return AlertRecord(
            subject=violation.subject,
            speed_kmh=violation.speed_kmh,
            message=ALERT_MESSAGE,
            created_at=self._clock(),
        )

    def build_notification(self, violation: Violation, key: str) -> NotificationRequest:
        return NotificationRequest(
            channel_id=NOTIFICATION_CHANNEL_ID,
            title=NOTIFICATION_TITLE,
            body=notification_body(violation.speed_kmh),
            priority=NotificationPriority.HIGH,
            dedup_key=key,
            notification_id=NOTIFICATION_ID,
        )

    async def _notify(self, request: NotificationRequest) -> None:
        if request.channel_id not in self._registered_channels:
            await self._notifier.ensure_channel(request.channel_id, NOTIFICATION_CHANNEL_NAME, request.priority)
            self._registered_channels.add(request.channel_id)
        await self._notifier.display(request)

    async def dispatch(self, verdict: NoViolation | Violation) -> DispatchReport:
        """Deliver *verdict* if it is a violation; no-op otherwise."""
        if not isinstance(verdict, Violation):
            return DispatchReport()

        key = dedup_key(verdict.subject, verdict.timestamp, self._window)
        alert_id = alert_id_for(key)
        senders: dict[AlertChannel, Callable[[], Awaitable[None]]] = {
            AlertChannel.ALERT_LOG: lambda: self._alert_log.append(alert_id, self.build_record(verdict)),
            AlertChannel.NOTIFICATION: lambda: self._notify(self.build_notification(verdict, key)),
        }

        suppressed: set[AlertChannel] = set()
        claims: dict[AlertChannel, datetime | None] = {}
        jobs: dict[AlertChannel, Awaitable[None]] = {}
        for channel, send in senders.items():
            claimed, previous = self._ledger.claim(verdict.subject, channel, verdict.timestamp)
            if not claimed:
                suppressed.add(channel)
                continue
            claims[channel] = previous
            jobs[channel] = asyncio.wait_for(send(), self._timeout)

        if suppressed:
            _logger.debug("Suppressed %s for %s within dedup window", sorted(suppressed), verdict.subject)

        try:
            results = await asyncio.gather(*jobs.values(), return_exceptions=True)
        except asyncio.CancelledError:
            for channel, previous in claims.items():
                self._ledger.release(verdict.subject, channel, previous)
            raise

        delivered: set[AlertChannel] = set()
        failures: list[DispatchFailure] = []
        for channel, result in zip(jobs, results, strict=True):
            if isinstance(result, Exception):
                self._ledger.release(verdict.subject, channel, claims[channel])
                reason = "timed out" if isinstance(result, TimeoutError) else str(result) or type(result).__name__
                _logger.warning("Alert delivery via %s failed for %s: %s", channel, verdict.subject, reason)
                _logger.debug("Alert delivery failure detail", exc_info=result)
                failures.append(DispatchFailure(channel=channel, reason=reason))
            elif isinstance(result, BaseException):
                self._ledger.release(verdict.subject, channel, claims[channel])
                raise result
            else:
                delivered.add(channel)

        if delivered:
            _logger.info(
                "Speed violation for %s: %s km/h > %s km/h (delivered via %s)",
                verdict.subject,
                verdict.speed_kmh,
                verdict.limit_kmh,
                ", ".join(sorted(delivered)),
            )

        return DispatchReport(
            alert_id=alert_id if AlertChannel.ALERT_LOG in jobs else None,
            delivered=frozenset(delivered),
            suppressed=frozenset(suppressed),
            failures=tuple(failures),
        )
