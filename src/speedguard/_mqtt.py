"""MQTT adapters: single-fix position provider and display sink."""

from __future__ import annotations

import asyncio
import functools
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, cast

import paho.mqtt.client as mqtt

from speedguard.config import MqttSettings
from speedguard.exceptions import DispatchError, SampleUnavailableError, SpeedGuardError
from speedguard.models.alert import AlertChannel, NotificationPriority, NotificationRequest

_logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _FixWaiter:
    subject: str
    provider: str
    future: asyncio.Future[dict[str, Any]]


def decode_fix_payload(payload: bytes) -> dict[str, Any]:
    """Parse an MQTT position payload into a JSON object."""
    parsed = json.loads(payload.decode("utf-8"))
    if not isinstance(parsed, dict):
        raise SpeedGuardError("Position payload is not a JSON object")
    return parsed


class MqttRuntime:
    """Threaded paho-mqtt client shared by the MQTT adapters.

    The network loop runs on paho's thread; callbacks are handed to the
    asyncio loop with ``call_soon_threadsafe``.
    """

    def __init__(self, settings: MqttSettings, *, client_id: str = "") -> None:
        self._settings = settings
        self._client_id = client_id
        self._client: mqtt.Client | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._subscriptions: dict[str, Any] = {}
        self._connected = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return self._client is not None

    def start(self) -> None:
        """Connect asynchronously and start the network loop (idempotent)."""
        if self._client is not None:
            return
        self._loop = asyncio.get_running_loop()
        settings = self._settings
        _logger.debug("MQTT runtime start host=%s port=%s", settings.host, settings.port)

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=self._client_id,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(_logger)
        if settings.username:
            client.username_pw_set(settings.username, settings.password)
        if settings.tls:
            client.tls_set()

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                _logger.warning("MQTT connect failed: %s", reason_code)
                return
            _logger.debug("MQTT connected reason=%s", reason_code)
            if self._loop is not None:
                self._loop.call_soon_threadsafe(self._connected.set)
            for topic in list(self._subscriptions):
                c.subscribe(topic, qos=0)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            handler = self._subscriptions.get(msg.topic)
            if handler is None or self._loop is None:
                return
            self._loop.call_soon_threadsafe(handler, msg.payload)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            _logger.debug("MQTT disconnected: %s", reason_code)
            if self._loop is not None:
                self._loop.call_soon_threadsafe(self._connected.clear)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect
        client.connect_async(settings.host, settings.port, keepalive=settings.keepalive)
        client.loop_start()
        self._client = client

    async def wait_connected(self, timeout: float) -> None:
        """Start the runtime and wait until the broker accepted the connection."""
        self.start()
        try:
            await asyncio.wait_for(self._connected.wait(), timeout)
        except TimeoutError as exc:
            raise SpeedGuardError(f"MQTT broker not connected within {timeout}s") from exc

    def subscribe(self, topic: str, handler: Any) -> None:
        self._subscriptions[topic] = handler
        if self._client is not None and self._client.is_connected():
            self._client.subscribe(topic, qos=0)

    def publish(self, topic: str, payload: Mapping[str, Any], *, retain: bool = False) -> None:
        client = self._client
        if client is None:
            raise SpeedGuardError("MQTT runtime not started")
        info = client.publish(topic, json.dumps(payload, separators=(",", ":")), qos=1, retain=retain)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise SpeedGuardError(f"MQTT publish to {topic} failed: {mqtt.error_string(info.rc)}")

    def stop(self) -> None:
        client = self._client
        self._client = None
        self._loop = None
        self._connected.clear()
        if client is None:
            return
        try:
            client.disconnect()
        finally:
            client.loop_stop()
            _logger.debug("MQTT network loop stopped")


class MqttPositionProvider:
    """Yields the next position fix published for a subject.

    Each subject publishes on its own topic, ``{topic}/{subject}``. Payloads
    are JSON objects with ``speed`` in m/s; optional ``subject`` and
    ``provider`` fields must match the request when present.
    """

    def __init__(self, runtime: MqttRuntime, topic: str) -> None:
        self._runtime = runtime
        self._topic = topic.rstrip("/")
        self._waiters: list[_FixWaiter] = []
        self._subscribed: set[str] = set()

    def topic_for(self, subject: str) -> str:
        if not subject or any(ch in subject for ch in "/+#"):
            raise SampleUnavailableError(f"Subject {subject!r} cannot be mapped to an MQTT topic")
        return f"{self._topic}/{subject}"

    def _on_payload(self, subject: str, payload: bytes) -> None:
        try:
            fix = decode_fix_payload(payload)
        except (ValueError, SpeedGuardError):
            _logger.debug("Ignoring unparseable position payload for %s", subject, exc_info=True)
            return

        claimed = fix.get("subject")
        if claimed is not None and claimed != subject:
            _logger.debug("Ignoring fix for %s published on the topic of %s", claimed, subject)
            return

        source = fix.get("provider")
        remaining: list[_FixWaiter] = []
        for waiter in self._waiters:
            if waiter.future.done():
                continue
            if waiter.subject != subject or (source is not None and source != waiter.provider):
                remaining.append(waiter)
                continue
            waiter.future.set_result(fix)
        self._waiters = remaining

    async def request_once(self, subject: str, provider: str, timeout: float) -> Mapping[str, Any]:
        topic = self.topic_for(subject)
        if topic not in self._subscribed:
            self._runtime.subscribe(topic, functools.partial(self._on_payload, subject))
            self._subscribed.add(topic)
        self._runtime.start()
        loop = asyncio.get_running_loop()
        waiter = _FixWaiter(subject=subject, provider=provider, future=loop.create_future())
        self._waiters.append(waiter)
        try:
            return await asyncio.wait_for(waiter.future, timeout)
        finally:
            if waiter in self._waiters:
                self._waiters.remove(waiter)


@dataclass
class MqttNotificationSink:
    """Publishes notifications for a display listening on an MQTT topic.

    Channels are announced once as retained messages under
    ``{topic}/channels/{channel_id}``.
    """

    runtime: MqttRuntime
    topic: str
    connect_timeout: float = 5.0
    _channels: set[str] = field(default_factory=set)

    async def ensure_channel(self, channel_id: str, name: str, priority: NotificationPriority) -> None:
        if channel_id in self._channels:
            return
        try:
            await self.runtime.wait_connected(self.connect_timeout)
            self.runtime.publish(
                f"{self.topic}/channels/{channel_id}",
                {"channelId": channel_id, "name": name, "importance": str(priority)},
                retain=True,
            )
        except SpeedGuardError as exc:
            raise DispatchError(str(exc), channel=AlertChannel.NOTIFICATION) from exc
        self._channels.add(channel_id)

    async def display(self, request: NotificationRequest) -> None:
        try:
            await self.runtime.wait_connected(self.connect_timeout)
            self.runtime.publish(
                self.topic,
                {
                    "channelId": request.channel_id,
                    "notificationId": request.notification_id,
                    "title": request.title,
                    "body": request.body,
                    "priority": str(request.priority),
                    "dedupKey": request.dedup_key,
                },
            )
        except SpeedGuardError as exc:
            raise DispatchError(str(exc), channel=AlertChannel.NOTIFICATION) from exc
