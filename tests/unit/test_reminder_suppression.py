from datetime import UTC, datetime, timedelta

import pytest

from app.features.onboarding_reminders.policy.suppression import (
    get_suppression_reason,
    is_permanent_suppression,
    should_send_reminder,
)

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=UTC)


@pytest.mark.parametrize(
    "last_activity_at, expires_at",
    [
        (None, None),
        (NOW - timedelta(days=3), NOW + timedelta(days=10)),
        (NOW - timedelta(minutes=5), NOW - timedelta(days=1)),
    ],
)
def test_completed_session_is_never_reminded(last_activity_at, expires_at):
    assert should_send_reminder("completed", last_activity_at, expires_at, now=NOW) is False
    assert get_suppression_reason("completed", last_activity_at, expires_at, now=NOW) == "completed"


def test_idle_threshold():
    assert should_send_reminder("in_progress", NOW - timedelta(minutes=61), None, now=NOW) is True
    assert should_send_reminder("in_progress", NOW - timedelta(minutes=30), None, now=NOW) is False


def test_expired_beats_recent_activity():
    reason = get_suppression_reason(
        "in_progress", NOW - timedelta(minutes=5), NOW - timedelta(seconds=1), now=NOW
    )

    assert reason == "expired"


def test_expiry_exactly_now_is_not_expired():
    assert get_suppression_reason("pending", None, NOW, now=NOW) is None


def test_no_activity_no_expiry_sends():
    assert should_send_reminder("pending", None, None, now=NOW) is True


def test_permanent_reasons():
    assert is_permanent_suppression("completed") is True
    assert is_permanent_suppression("expired") is True
    assert is_permanent_suppression("recently_active") is False
    assert is_permanent_suppression(None) is False
