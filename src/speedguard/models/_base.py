"""Shared model building blocks."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict


def utcnow() -> datetime:
    return datetime.now(UTC)


def validate_subject(value: str) -> str:
    """Strip and reject empty subject identifiers."""
    subject = value.strip()
    if not subject:
        raise ValueError("subject must be non-empty")
    return subject


def _ensure_tz_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


Subject = Annotated[str, AfterValidator(validate_subject)]
"""Opaque, non-empty identifier of the tracked subject."""

UtcDatetime = Annotated[datetime, AfterValidator(_ensure_tz_aware)]
"""Datetime coerced to be timezone aware (naive values are taken as UTC)."""


class FrozenModel(BaseModel):
    """Immutable value object base."""

    model_config = ConfigDict(frozen=True, extra="forbid")
