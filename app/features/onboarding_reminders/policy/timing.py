"""
Date arithmetic for reminder scheduling.

"now" is read from the wall clock on every call unless the caller passes it
in. Two calls a few microseconds apart can disagree at a boundary, so due-ness
is only meaningful at the instant it was computed.
"""

import math
from datetime import UTC, datetime, timedelta

from app.features.onboarding_reminders.domain.models import ReminderScheduleConfig

ONE_DAY = timedelta(days=1)


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (database timestamps) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def calculate_scheduled_time(base: datetime, config: ReminderScheduleConfig) -> datetime:
    """Base instant plus the config's day offset, then its hour offset if any."""
    scheduled_at = as_utc(base) + timedelta(days=config.days_after_creation)

    if config.hours_after_creation:
        scheduled_at += timedelta(hours=config.hours_after_creation)

    return scheduled_at


def is_reminder_due(scheduled_at: datetime, *, now: datetime | None = None) -> bool:
    """True when scheduled_at is strictly before now."""
    current = as_utc(now) if now is not None else utcnow()
    return as_utc(scheduled_at) < current


def days_until_expiration(
    expires_at: datetime | None, *, now: datetime | None = None
) -> int | None:
    """Whole days left before expiry, rounded up and never negative."""
    if expires_at is None:
        return None

    current = as_utc(now) if now is not None else utcnow()
    remaining = (as_utc(expires_at) - current) / ONE_DAY
    return max(0, math.ceil(remaining))
