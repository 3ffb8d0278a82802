"""
Schedule generation and next-reminder selection.

get_next_reminder and should_send_reminder are independent predicates; a
reminder may only be dispatched when both agree. decide_reminder evaluates
them together against a single instant.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime

from app.features.onboarding_reminders.domain.errors import ReminderScheduleError
from app.features.onboarding_reminders.domain.models import (
    CadenceProfile,
    ComputedReminder,
    OnboardingSessionSnapshot,
    ReminderDecision,
    ReminderScheduleConfig,
)
from app.features.onboarding_reminders.policy.catalog import get_reminder_schedule
from app.features.onboarding_reminders.policy.suppression import get_suppression_reason
from app.features.onboarding_reminders.policy.timing import (
    as_utc,
    calculate_scheduled_time,
    is_reminder_due,
    utcnow,
)


def generate_reminder_schedule(
    created_at: datetime,
    profile: CadenceProfile,
    custom_schedule: Sequence[ReminderScheduleConfig] | None = None,
) -> list[ComputedReminder]:
    """
    Build the full reminder timeline for a session.

    Args:
        created_at: Session creation instant
        profile: Cadence profile name
        custom_schedule: Required when profile is "custom", ignored otherwise

    Returns:
        Reminders in catalog order

    Raises:
        ReminderScheduleError: "custom" profile without a non-empty custom_schedule
    """
    if profile == "custom":
        if not custom_schedule:
            raise ReminderScheduleError("Custom cadence profile requires a custom schedule")
        configs = list(custom_schedule)
    else:
        configs = get_reminder_schedule(profile)

    return [
        ComputedReminder(kind=config.kind, scheduled_at=calculate_scheduled_time(created_at, config))
        for config in configs
    ]


def get_next_reminder(
    created_at: datetime,
    profile: CadenceProfile,
    sent_reminder_types: Iterable[str],
    *,
    custom_schedule: Sequence[ReminderScheduleConfig] | None = None,
    now: datetime | None = None,
) -> ComputedReminder | None:
    """
    First reminder, in catalog order, that is due and not already sent.

    Earlier kinds win when several are due at once, so a session that missed
    a few ticks still gets "gentle" before "final".
    """
    sent = set(sent_reminder_types)
    schedule = generate_reminder_schedule(created_at, profile, custom_schedule)

    for reminder in schedule:
        if reminder.kind not in sent and is_reminder_due(reminder.scheduled_at, now=now):
            return reminder

    return None


def decide_reminder(
    session: OnboardingSessionSnapshot,
    profile: CadenceProfile,
    sent_kinds: Iterable[str],
    *,
    custom_schedule: Sequence[ReminderScheduleConfig] | None = None,
    now: datetime | None = None,
) -> ReminderDecision:
    """Evaluate the next reminder and the suppression rules at one instant."""
    current = as_utc(now) if now is not None else utcnow()

    reminder = get_next_reminder(
        session.created_at,
        profile,
        sent_kinds,
        custom_schedule=custom_schedule,
        now=current,
    )
    reason = get_suppression_reason(
        session.status,
        session.last_activity_at,
        session.expires_at,
        now=current,
    )

    return ReminderDecision(reminder=reminder, suppression_reason=reason, evaluated_at=current)
