from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import pytest

from speedguard.exceptions import DispatchError, SpeedGuardTransportError
from speedguard.models.alert import AlertChannel, AlertRecord, NotificationPriority, NotificationRequest


@dataclass
class FakeTransport:
    """In-memory REST key/value store."""

    data: dict[str, Any] = field(default_factory=dict)
    fail_get: bool = False
    fail_put: bool = False
    calls: list[tuple[str, str]] = field(default_factory=list)

    async def get_json(self, path: str) -> Any:
        self.calls.append(("GET", path))
        if self.fail_get:
            raise SpeedGuardTransportError(f"HTTP 503 from {path}", status_code=503, endpoint=path)
        return self.data.get(path)

    async def put_json(self, path: str, payload: Mapping[str, Any]) -> Any:
        self.calls.append(("PUT", path))
        if self.fail_put:
            raise SpeedGuardTransportError(f"HTTP 500 from {path}", status_code=500, endpoint=path)
        self.data[path] = dict(payload)
        return dict(payload)


@dataclass
class FakeAlertLog:
    fail: bool = False
    records: dict[str, AlertRecord] = field(default_factory=dict)
    attempts: int = 0

    async def append(self, alert_id: str, record: AlertRecord) -> None:
        self.attempts += 1
        if self.fail:
            raise DispatchError("alert store offline", channel=AlertChannel.ALERT_LOG)
        self.records[alert_id] = record


@dataclass
class FakeNotifier:
    fail: bool = False
    channels: list[tuple[str, str, NotificationPriority]] = field(default_factory=list)
    shown: list[NotificationRequest] = field(default_factory=list)

    async def ensure_channel(self, channel_id: str, name: str, priority: NotificationPriority) -> None:
        self.channels.append((channel_id, name, priority))

    async def display(self, request: NotificationRequest) -> None:
        if self.fail:
            raise RuntimeError("display unavailable")
        self.shown.append(request)


@dataclass
class FakePositionProvider:
    """Returns a queued fix, or never answers when ``hang`` is set."""

    fix: Mapping[str, Any] | None = None
    hang: bool = False
    requests: list[tuple[str, str, float]] = field(default_factory=list)

    async def request_once(self, subject: str, provider: str, timeout: float) -> Mapping[str, Any]:
        self.requests.append((subject, provider, timeout))
        if self.hang or self.fix is None:
            await asyncio.Event().wait()
        assert self.fix is not None
        return self.fix


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def alert_log() -> FakeAlertLog:
    return FakeAlertLog()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def position_provider() -> FakePositionProvider:
    return FakePositionProvider()
