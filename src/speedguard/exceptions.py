"""Custom exception hierarchy for speedguard."""

from __future__ import annotations


class SpeedGuardError(Exception):
    """Base exception for all speedguard errors."""


class SpeedGuardConfigError(SpeedGuardError):
    """Invalid or missing configuration."""


class SpeedGuardTransportError(SpeedGuardError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class ConfigUnavailableError(SpeedGuardError):
    """The speed limit for a subject could not be read.

    Never escapes :class:`~speedguard.limits.LimitStore`; it is converted
    into the fail-safe ``0 km/h`` limit there.
    """

    def __init__(self, message: str, *, subject: str = "") -> None:
        self.subject = subject
        super().__init__(message)


class SampleUnavailableError(SpeedGuardError):
    """No usable speed sample for this cycle (the cycle is skipped)."""


class SampleTimeoutError(SampleUnavailableError):
    """No position fix arrived before the sampling timeout."""

    def __init__(self, message: str, *, timeout: float | None = None) -> None:
        self.timeout = timeout
        super().__init__(message)


class PermissionDeniedError(SpeedGuardError):
    """Location permission is missing.

    Fatal for the cycle: the trigger should stop rescheduling or prompt
    the user for authorization.
    """


class DispatchError(SpeedGuardError):
    """Delivery through one alert channel failed."""

    def __init__(self, message: str, *, channel: str = "") -> None:
        self.channel = channel
        super().__init__(message)
