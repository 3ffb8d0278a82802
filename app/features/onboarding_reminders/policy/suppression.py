"""
Suppression rules: whether a session may receive a reminder right now.

Precedence, first match wins:
    1. completed session          -> permanent
    2. expiry instant has passed  -> permanent
    3. activity within last hour  -> temporary
"""

from datetime import datetime, timedelta

from app.features.onboarding_reminders.domain.models import SuppressionReason
from app.features.onboarding_reminders.policy.timing import as_utc, utcnow

ACTIVITY_SUPPRESSION_WINDOW = timedelta(hours=1)

_PERMANENT_REASONS = frozenset({"completed", "expired"})


def get_suppression_reason(
    status: str,
    last_activity_at: datetime | None,
    expires_at: datetime | None,
    *,
    now: datetime | None = None,
) -> SuppressionReason | None:
    """Return why a reminder must not be sent, or None if it may be."""
    current = as_utc(now) if now is not None else utcnow()

    if status == "completed":
        return "completed"

    if expires_at is not None and current > as_utc(expires_at):
        return "expired"

    if last_activity_at is not None:
        if as_utc(last_activity_at) > current - ACTIVITY_SUPPRESSION_WINDOW:
            return "recently_active"

    return None


def should_send_reminder(
    status: str,
    last_activity_at: datetime | None,
    expires_at: datetime | None,
    *,
    now: datetime | None = None,
) -> bool:
    """Predicate form of get_suppression_reason. Records nothing."""
    return get_suppression_reason(status, last_activity_at, expires_at, now=now) is None


def is_permanent_suppression(reason: SuppressionReason | None) -> bool:
    return reason in _PERMANENT_REASONS
