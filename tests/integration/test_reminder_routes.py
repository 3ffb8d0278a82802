from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from app.auth.verify import auth_dependency
from app.features.onboarding_reminders.domain.errors import (
    InvalidReminderRequestError,
    ReminderScheduleError,
    SessionNotFoundError,
)
from app.features.onboarding_reminders.domain.models import (
    ComputedReminder,
    ReminderHistory,
    ReminderPlan,
    ReminderRecord,
    UpcomingReminder,
)
from app.features.onboarding_reminders.services import reminder_service
from app.main import app

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=UTC)

client = TestClient(app)


@pytest.fixture(autouse=True)
def authenticated(apply_auth_override):
    apply_auth_override(app)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def member(monkeypatch, make_session):
    """Caller is a sales rep who owns the session."""
    monkeypatch.setattr(reminder_service, "get_session", AsyncMock(return_value=make_session()))
    monkeypatch.setattr(reminder_service, "get_member_role", AsyncMock(return_value="sales_rep"))


def _plan(profile="standard") -> ReminderPlan:
    return ReminderPlan(
        session_id="session-1",
        profile=profile,
        reminders=[ComputedReminder("gentle", T0 + timedelta(days=2))],
    )


def test_schedule_reminders(monkeypatch, member):
    schedule_mock = AsyncMock(return_value=_plan("aggressive"))
    monkeypatch.setattr(reminder_service, "schedule_reminders", schedule_mock)

    response = client.post("/onboarding/reminders/session-1/schedule", json={})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["profile"] == "aggressive"
    assert data["reminders"][0]["kind"] == "gentle"
    schedule_mock.assert_awaited_once_with("session-1", None, None)


def test_schedule_reminders_custom_payload(monkeypatch, member):
    schedule_mock = AsyncMock(return_value=_plan("custom"))
    monkeypatch.setattr(reminder_service, "schedule_reminders", schedule_mock)

    response = client.post(
        "/onboarding/reminders/session-1/schedule",
        json={"profile": "custom", "custom_schedule": [{"kind": "final", "days_after_creation": 4}]},
    )

    assert response.status_code == 200
    assert schedule_mock.await_args.args[2] == [
        {"kind": "final", "days_after_creation": 4, "hours_after_creation": None}
    ]


def test_schedule_rejects_unknown_profile(member):
    response = client.post("/onboarding/reminders/session-1/schedule", json={"profile": "weekly"})

    assert response.status_code == 422


def test_schedule_policy_error_is_bad_request(monkeypatch, member):
    monkeypatch.setattr(
        reminder_service,
        "schedule_reminders",
        AsyncMock(side_effect=ReminderScheduleError("Custom cadence profile requires a custom schedule")),
    )

    response = client.post("/onboarding/reminders/session-1/schedule", json={"profile": "custom"})

    assert response.status_code == 400
    assert "custom schedule" in response.json()["detail"]


def test_update_schedule_requires_profile(member):
    response = client.put("/onboarding/reminders/session-1/schedule", json={})

    assert response.status_code == 400


def test_update_schedule(monkeypatch, member):
    update_mock = AsyncMock(return_value=_plan("gentle"))
    monkeypatch.setattr(reminder_service, "update_reminder_schedule", update_mock)

    response = client.put("/onboarding/reminders/session-1/schedule", json={"profile": "gentle"})

    assert response.status_code == 200
    assert response.json()["profile"] == "gentle"


def test_cancel_reminders(monkeypatch, member):
    monkeypatch.setattr(reminder_service, "cancel_reminders", AsyncMock(return_value=2))

    response = client.post("/onboarding/reminders/session-1/cancel")

    assert response.status_code == 200
    assert response.json() == {"success": True, "cancelled": 2}


def test_send_manual_reminder(monkeypatch, member):
    record = ReminderRecord(
        id="rem-1",
        session_id="session-1",
        reminder_type="custom",
        status="sent",
        scheduled_at=T0,
        is_manual=True,
    )
    send_mock = AsyncMock(return_value=record)
    monkeypatch.setattr(reminder_service, "send_manual_reminder", send_mock)

    response = client.post(
        "/onboarding/reminders/session-1/send",
        json={"custom_subject": "Hello", "custom_message": "Just checking in"},
    )

    assert response.status_code == 200
    assert response.json()["reminder"]["id"] == "rem-1"
    send_mock.assert_awaited_once_with("session-1", "Hello", "Just checking in")


def test_send_manual_reminder_invalid_request(monkeypatch, member):
    monkeypatch.setattr(
        reminder_service,
        "send_manual_reminder",
        AsyncMock(side_effect=InvalidReminderRequestError("Custom reminder requires subject and message")),
    )

    response = client.post("/onboarding/reminders/session-1/send", json={"custom_subject": "Hi"})

    assert response.status_code == 400


def test_get_session_reminders(monkeypatch, member):
    history = ReminderHistory(
        session_id="session-1",
        profile="standard",
        enabled=True,
        reminders=[],
        timeline=[
            UpcomingReminder("gentle", "Gentle Reminder", T0 + timedelta(days=2), False, True)
        ],
    )
    monkeypatch.setattr(reminder_service, "get_session_reminders", AsyncMock(return_value=history))

    response = client.get("/onboarding/reminders/session-1")

    assert response.status_code == 200
    data = response.json()
    assert data["enabled"] is True
    assert data["timeline"][0]["label"] == "Gentle Reminder"
    assert data["timeline"][0]["due"] is True


def test_session_not_found(monkeypatch):
    monkeypatch.setattr(
        reminder_service, "get_session", AsyncMock(side_effect=SessionNotFoundError("missing"))
    )

    response = client.get("/onboarding/reminders/missing")

    assert response.status_code == 404


def test_sales_rep_cannot_touch_other_reps_session(monkeypatch, make_session):
    monkeypatch.setattr(
        reminder_service,
        "get_session",
        AsyncMock(return_value=make_session(owner_id="someone-else")),
    )
    monkeypatch.setattr(reminder_service, "get_member_role", AsyncMock(return_value="sales_rep"))
    cancel_mock = AsyncMock(return_value=0)
    monkeypatch.setattr(reminder_service, "cancel_reminders", cancel_mock)

    response = client.post("/onboarding/reminders/session-1/cancel")

    assert response.status_code == 403
    cancel_mock.assert_not_awaited()


def test_platform_admin_skips_role_lookup(monkeypatch, make_session):
    app.dependency_overrides[auth_dependency] = lambda: {
        "sub": "staff-1",
        "app_metadata": {"role": "platform_admin"},
    }
    monkeypatch.setattr(
        reminder_service,
        "get_session",
        AsyncMock(return_value=make_session(owner_id="someone-else")),
    )
    role_mock = AsyncMock(return_value=None)
    monkeypatch.setattr(reminder_service, "get_member_role", role_mock)
    monkeypatch.setattr(reminder_service, "cancel_reminders", AsyncMock(return_value=0))

    response = client.post("/onboarding/reminders/session-1/cancel")

    assert response.status_code == 200
    role_mock.assert_not_awaited()


def test_analytics_requires_platform_admin(monkeypatch):
    monkeypatch.setattr("app.auth.verify.settings.PLATFORM_ADMIN_USER_IDS", "")
    response = client.get("/onboarding/reminders/analytics")

    assert response.status_code == 403


def test_analytics_for_platform_admin(monkeypatch):
    app.dependency_overrides[auth_dependency] = lambda: {
        "sub": "staff-1",
        "app_metadata": {"role": "platform_admin"},
    }
    stats = {
        "total": 4,
        "by_status": {"sent": 4},
        "by_type": {"gentle": 4},
        "opened": 2,
        "clicked": 1,
        "open_rate": "50.0%",
        "click_rate": "25.0%",
    }
    monkeypatch.setattr(reminder_service, "get_reminder_analytics", AsyncMock(return_value=stats))

    response = client.get("/onboarding/reminders/analytics")

    assert response.status_code == 200
    assert response.json()["open_rate"] == "50.0%"


def test_track_open_returns_pixel(monkeypatch):
    app.dependency_overrides.clear()
    open_mock = AsyncMock(return_value=True)
    monkeypatch.setattr(reminder_service, "track_reminder_open", open_mock)

    response = client.get("/onboarding/reminders/track/rem-1/open")

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/gif"
    open_mock.assert_awaited_once_with("rem-1")


def test_track_click_redirects(monkeypatch):
    app.dependency_overrides.clear()
    monkeypatch.setattr(
        reminder_service,
        "track_reminder_click",
        AsyncMock(return_value="https://app.example.com/onboarding/tok-abc"),
    )

    response = client.get("/onboarding/reminders/track/rem-1/click", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "https://app.example.com/onboarding/tok-abc"


def test_track_click_unknown_reminder(monkeypatch):
    monkeypatch.setattr(reminder_service, "track_reminder_click", AsyncMock(return_value=None))

    response = client.get("/onboarding/reminders/track/missing/click", follow_redirects=False)

    assert response.status_code == 204
