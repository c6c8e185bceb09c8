"""Monitor configuration for speedguard."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from speedguard._constants import BASE_URL, DEFAULT_PROVIDER
from speedguard.exceptions import SpeedGuardConfigError


def _env_bool(env_key: str, value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on", "granted"}:
        return True
    if normalized in {"0", "false", "no", "n", "off", "denied"}:
        return False
    raise SpeedGuardConfigError(f"{env_key} must be a boolean, got {value!r}")


def _env_number(env_key: str, value: str, kind: type[int] | type[float]) -> int | float:
    try:
        return kind(value)
    except ValueError as exc:
        raise SpeedGuardConfigError(f"{env_key} must be a {kind.__name__}, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class MqttSettings:
    """Broker connection used by the MQTT position and display adapters.

    ``position_topic`` is a prefix; each subject publishes fixes on
    ``{position_topic}/{subject}``.
    """

    host: str = "localhost"
    port: int = 1883
    tls: bool = False
    username: str | None = None
    password: str | None = None
    keepalive: int = 60
    position_topic: str = "speedguard/position"
    display_topic: str = "speedguard/display"


@dataclasses.dataclass(frozen=True)
class MonitorConfig:
    """Monitor configuration.

    Parameters
    ----------
    base_url : str
        Root URL of the key/value service holding ``speed_limits`` and
        ``alerts``.
    auth_token : str or None
        Sent as the ``auth`` query parameter when set.
    path_suffix : str
        Appended to every REST path. Firebase Realtime Database needs
        ``".json"``.
    limit_timeout : float
        Upper bound in seconds for one speed limit fetch.
    sample_timeout : float
        Upper bound in seconds for one position fix.
    dispatch_timeout : float
        Upper bound in seconds for each alert channel delivery.
    dedup_window : float
        Rolling window in seconds during which repeated violations for the
        same subject are suppressed per channel.
    location_provider : str
        Provider name passed to the positioning capability.
    location_permission : bool
        Whether the process holds location permission.
    mqtt : MqttSettings
        Broker settings for the MQTT adapters.
    """

    base_url: str = BASE_URL
    auth_token: str | None = None
    path_suffix: str = ""
    limit_timeout: float = 5.0
    sample_timeout: float = 30.0
    dispatch_timeout: float = 10.0
    dedup_window: float = 60.0
    location_provider: str = DEFAULT_PROVIDER
    location_permission: bool = True
    mqtt: MqttSettings = dataclasses.field(default_factory=MqttSettings)

    def __post_init__(self) -> None:
        for name in ("limit_timeout", "sample_timeout", "dispatch_timeout"):
            if getattr(self, name) <= 0:
                raise SpeedGuardConfigError(f"{name} must be positive")
        if self.dedup_window < 0:
            raise SpeedGuardConfigError("dedup_window must not be negative")

    @classmethod
    def from_env(cls, **overrides: Any) -> MonitorConfig:
        """Create configuration from ``SPEEDGUARD_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        mqtt_kwargs: dict[str, Any] = {}
        _ENV_MQTT_MAP = {
            "SPEEDGUARD_MQTT_HOST": "host",
            "SPEEDGUARD_MQTT_USERNAME": "username",
            "SPEEDGUARD_MQTT_PASSWORD": "password",
            "SPEEDGUARD_MQTT_POSITION_TOPIC": "position_topic",
            "SPEEDGUARD_MQTT_DISPLAY_TOPIC": "display_topic",
        }
        for env_key, field_name in _ENV_MQTT_MAP.items():
            val = env.get(env_key)
            if val is not None:
                mqtt_kwargs[field_name] = val
        for env_key, field_name in (("SPEEDGUARD_MQTT_PORT", "port"), ("SPEEDGUARD_MQTT_KEEPALIVE", "keepalive")):
            val = env.get(env_key)
            if val is not None:
                mqtt_kwargs[field_name] = _env_number(env_key, val, int)
        tls_env = env.get("SPEEDGUARD_MQTT_TLS")
        if tls_env is not None:
            mqtt_kwargs["tls"] = _env_bool("SPEEDGUARD_MQTT_TLS", tls_env, False)

        mqtt_overrides = overrides.pop("mqtt", None)
        if isinstance(mqtt_overrides, dict):
            mqtt_kwargs.update(mqtt_overrides)
        elif isinstance(mqtt_overrides, MqttSettings):
            mqtt_kwargs = dataclasses.asdict(mqtt_overrides)

        config_kwargs: dict[str, Any] = {"mqtt": MqttSettings(**mqtt_kwargs)}

        _ENV_CONFIG_MAP = {
            "SPEEDGUARD_BASE_URL": "base_url",
            "SPEEDGUARD_AUTH_TOKEN": "auth_token",
            "SPEEDGUARD_PATH_SUFFIX": "path_suffix",
            "SPEEDGUARD_LOCATION_PROVIDER": "location_provider",
        }
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_SECONDS_MAP = {
            "SPEEDGUARD_LIMIT_TIMEOUT": "limit_timeout",
            "SPEEDGUARD_SAMPLE_TIMEOUT": "sample_timeout",
            "SPEEDGUARD_DISPATCH_TIMEOUT": "dispatch_timeout",
            "SPEEDGUARD_DEDUP_WINDOW": "dedup_window",
        }
        for env_key, field_name in _ENV_SECONDS_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, float)

        if "location_permission" not in overrides:
            config_kwargs["location_permission"] = _env_bool(
                "SPEEDGUARD_LOCATION_PERMISSION", env.get("SPEEDGUARD_LOCATION_PERMISSION"), True
            )

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
