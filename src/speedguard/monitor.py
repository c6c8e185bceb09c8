"""High-level async speed monitor wiring the pipeline to real adapters."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import aiohttp

from speedguard._mqtt import MqttPositionProvider, MqttRuntime
from speedguard._transport import HttpTransport, Transport
from speedguard.config import MonitorConfig
from speedguard.controller import MonitorController
from speedguard.dispatch import AlertDispatcher, AlertLog, HttpAlertLog, LoggingNotificationSink, NotificationSink
from speedguard.exceptions import SpeedGuardError
from speedguard.limits import LimitStore
from speedguard.models.outcome import CycleOutcome
from speedguard.position import PermissionGate, PositionProvider, PositionSource, StaticPermissionGate

_logger = logging.getLogger(__name__)


class SpeedMonitor:
    """Async speed limit monitor.

    Usage::

        async with SpeedMonitor(MonitorConfig.from_env()) as monitor:
            outcome = await monitor.run("renter_123")

    Every collaborator can be replaced; by default limits and alerts go
    over HTTP, position fixes arrive over MQTT and notifications are shown
    through logging.
    """

    def __init__(
        self,
        config: MonitorConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        position_provider: PositionProvider | None = None,
        permission: PermissionGate | None = None,
        alert_log: AlertLog | None = None,
        notifier: NotificationSink | None = None,
        on_complete: Callable[[CycleOutcome], None] | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._external_transport = transport is not None
        self._position_provider = position_provider
        self._permission = permission or StaticPermissionGate(config.location_permission)
        self._alert_log = alert_log
        self._notifier = notifier or LoggingNotificationSink()
        self._on_complete = on_complete
        self._mqtt_runtime: MqttRuntime | None = None
        self._controller: MonitorController | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> SpeedMonitor:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession(
                    timeout=aiohttp.ClientTimeout(total=self._config.limit_timeout + self._config.dispatch_timeout),
                )
            self._transport = HttpTransport(self._config, self._http_session)

        if self._position_provider is None:
            self._mqtt_runtime = MqttRuntime(self._config.mqtt)
            self._position_provider = MqttPositionProvider(self._mqtt_runtime, self._config.mqtt.position_topic)

        config = self._config
        self._controller = MonitorController(
            LimitStore(self._transport, timeout=config.limit_timeout),
            PositionSource(
                self._position_provider,
                self._permission,
                provider_name=config.location_provider,
                timeout=config.sample_timeout,
            ),
            AlertDispatcher(
                self._alert_log or HttpAlertLog(self._transport),
                self._notifier,
                dedup_window=config.dedup_window,
                timeout=config.dispatch_timeout,
            ),
            on_complete=self._on_complete,
        )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._mqtt_runtime is not None:
            self._mqtt_runtime.stop()
            self._mqtt_runtime = None
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if not self._external_transport:
            self._transport = None
        self._controller = None

    def _require_controller(self) -> MonitorController:
        if self._controller is None:
            raise SpeedGuardError("Monitor not initialized. Use 'async with SpeedMonitor(...) as monitor:'")
        return self._controller

    async def run(self, subject: str) -> CycleOutcome:
        """Run one monitoring cycle for *subject*."""
        return await self._require_controller().run(subject)
