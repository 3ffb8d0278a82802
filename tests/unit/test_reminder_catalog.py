import pytest

from app.features.onboarding_reminders.domain.errors import (
    ReminderPolicyError,
    ReminderScheduleError,
)
from app.features.onboarding_reminders.policy.catalog import (
    format_reminder_kind,
    get_reminder_schedule,
    parse_custom_schedule,
)


@pytest.mark.parametrize("profile", ["standard", "aggressive", "gentle"])
def test_profile_offsets_are_non_decreasing(profile):
    days = [config.days_after_creation for config in get_reminder_schedule(profile)]

    assert days == sorted(days)
    assert [config.kind for config in get_reminder_schedule(profile)] == [
        "gentle",
        "encouragement",
        "final",
    ]


@pytest.mark.parametrize(
    "profile,expected_days",
    [
        ("standard", [2, 5, 7]),
        ("aggressive", [1, 3, 5]),
        ("gentle", [3, 7, 10]),
    ],
)
def test_profile_offsets(profile, expected_days):
    schedule = get_reminder_schedule(profile)

    assert [(c.kind, c.days_after_creation) for c in schedule] == list(
        zip(["gentle", "encouragement", "final"], expected_days, strict=True)
    )
    assert all(c.hours_after_creation is None for c in schedule)


def test_custom_profile_has_no_builtin_entries():
    assert get_reminder_schedule("custom") == []


def test_schedule_is_a_fresh_list():
    first = get_reminder_schedule("standard")
    first.clear()

    assert len(get_reminder_schedule("standard")) == 3


def test_unknown_profile_raises():
    with pytest.raises(ReminderScheduleError):
        get_reminder_schedule("weekly")


def test_format_reminder_kind():
    assert format_reminder_kind("final") == "Final Reminder"
    assert format_reminder_kind("something-else") == "something-else"


def test_parse_custom_schedule():
    configs = parse_custom_schedule(
        [
            {"kind": "gentle", "days_after_creation": 1},
            {"kind": "final", "days_after_creation": 4, "hours_after_creation": 6},
        ]
    )

    assert [(c.kind, c.days_after_creation, c.hours_after_creation) for c in configs] == [
        ("gentle", 1, None),
        ("final", 4, 6),
    ]


def test_parse_custom_schedule_empty():
    assert parse_custom_schedule(None) == []
    assert parse_custom_schedule([]) == []


@pytest.mark.parametrize(
    "entry",
    [
        {"kind": "nudge", "days_after_creation": 1},
        {"kind": "gentle", "days_after_creation": -1},
        {"kind": "gentle", "days_after_creation": "2"},
        {"kind": "gentle", "days_after_creation": True},
        {"kind": "gentle", "days_after_creation": 1, "hours_after_creation": -3},
    ],
)
def test_parse_custom_schedule_rejects_bad_entries(entry):
    with pytest.raises(ReminderPolicyError):
        parse_custom_schedule([entry])
