"""Internal constants shared across the library."""

BASE_URL = "http://127.0.0.1:9000"
USER_AGENT = "speedguard/1"

LIMITS_PATH = "/speed_limits"
ALERTS_PATH = "/alerts"

#: Exact m/s → km/h factor (3600 s / 1000 m).
MPS_TO_KMH = 3.6

#: Limit used when the config service has no usable value. Any motion
#: above 0 km/h is then a violation.
FAIL_SAFE_LIMIT_KMH = 0.0

DEFAULT_PROVIDER = "gps"

# ------------------------------------------------------------------
# Alert / notification texts
# ------------------------------------------------------------------

ALERT_MESSAGE = "Speed limit exceeded!"

NOTIFICATION_CHANNEL_ID = "speed_warning_channel"
NOTIFICATION_CHANNEL_NAME = "Speed Warnings"
NOTIFICATION_TITLE = "Speed Warning!"
NOTIFICATION_ID = 2


def format_speed(speed_kmh: float) -> str:
    """Render a speed the way user-facing texts show it (one decimal)."""
    return f"{speed_kmh:.1f}"


def notification_body(speed_kmh: float) -> str:
    return f"You are driving at {format_speed(speed_kmh)} km/h. Reduce your speed."
