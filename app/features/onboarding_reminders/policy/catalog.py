"""
Reminder cadence catalog.

Each named cadence profile maps to an ordered list of reminder kinds and day
offsets from session creation. The "initial" invitation is sent when the
session is created and never appears here.
"""

from typing import Any

from app.features.onboarding_reminders.domain.errors import (
    ReminderPolicyError,
    ReminderScheduleError,
)
from app.features.onboarding_reminders.domain.models import (
    REMINDER_KINDS,
    CadenceProfile,
    ReminderKind,
    ReminderScheduleConfig,
)

# Offsets must stay non-decreasing within a profile; nothing re-sorts them.
_SCHEDULES: dict[str, tuple[ReminderScheduleConfig, ...]] = {
    "standard": (
        ReminderScheduleConfig("gentle", 2),
        ReminderScheduleConfig("encouragement", 5),
        ReminderScheduleConfig("final", 7),
    ),
    "aggressive": (
        ReminderScheduleConfig("gentle", 1),
        ReminderScheduleConfig("encouragement", 3),
        ReminderScheduleConfig("final", 5),
    ),
    "gentle": (
        ReminderScheduleConfig("gentle", 3),
        ReminderScheduleConfig("encouragement", 7),
        ReminderScheduleConfig("final", 10),
    ),
    "custom": (),
}

_KIND_LABELS: dict[str, str] = {
    "initial": "Initial Invitation",
    "gentle": "Gentle Reminder",
    "encouragement": "Encouragement",
    "final": "Final Reminder",
    "custom": "Custom Reminder",
}


def get_reminder_schedule(profile: CadenceProfile) -> list[ReminderScheduleConfig]:
    """
    Return the reminder list for a cadence profile.

    "custom" has no built-in entries and yields an empty list; callers supply
    their own list to the schedule generator instead.
    """
    if profile not in _SCHEDULES:
        raise ReminderScheduleError(f"Unknown cadence profile: {profile!r}")
    return list(_SCHEDULES[profile])


def format_reminder_kind(kind: ReminderKind | str) -> str:
    """Human-readable label for a reminder kind."""
    return _KIND_LABELS.get(kind, kind)


def parse_custom_schedule(raw: list[dict[str, Any]] | None) -> list[ReminderScheduleConfig]:
    """
    Validate a stored custom schedule into configs.

    Args:
        raw: List of {"kind", "days_after_creation", "hours_after_creation"} dicts

    Returns:
        Configs in the order given

    Raises:
        ReminderPolicyError: On unknown kinds or negative/non-integer offsets
    """
    if not raw:
        return []

    configs: list[ReminderScheduleConfig] = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ReminderPolicyError(f"Custom schedule entry {index} is not an object")

        kind = entry.get("kind")
        if kind not in REMINDER_KINDS:
            raise ReminderPolicyError(f"Custom schedule entry {index} has unknown kind {kind!r}")

        days = entry.get("days_after_creation")
        hours = entry.get("hours_after_creation")
        if not isinstance(days, int) or isinstance(days, bool) or days < 0:
            raise ReminderPolicyError(
                f"Custom schedule entry {index} needs a non-negative integer days_after_creation"
            )
        if hours is not None and (not isinstance(hours, int) or isinstance(hours, bool) or hours < 0):
            raise ReminderPolicyError(
                f"Custom schedule entry {index} has an invalid hours_after_creation"
            )

        configs.append(ReminderScheduleConfig(kind, days, hours))

    return configs
