from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from app.config import settings
from app.db.helpers import DatabaseError
from app.features.onboarding_reminders.domain.errors import (
    InvalidReminderRequestError,
    ReminderScheduleError,
    ReminderServiceError,
    SessionNotFoundError,
)
from app.features.onboarding_reminders.domain.models import DeliveryResult, ReminderRecord
from app.features.onboarding_reminders.repository import reminder_repository, session_repository
from app.features.onboarding_reminders.services import reminder_service

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=UTC)


def _record(**overrides) -> ReminderRecord:
    data = {
        "id": "rem-1",
        "session_id": "session-1",
        "reminder_type": "gentle",
        "status": "processing",
        "scheduled_at": T0,
        "is_manual": True,
    }
    data.update(overrides)
    return ReminderRecord(**data)


def _patch_session(monkeypatch, session):
    mock = AsyncMock(return_value=session)
    monkeypatch.setattr(session_repository, "get_session_snapshot", mock)
    return mock


@pytest.mark.asyncio
async def test_get_session_not_found(monkeypatch):
    _patch_session(monkeypatch, None)

    with pytest.raises(SessionNotFoundError):
        await reminder_service.get_session("missing")


@pytest.mark.asyncio
async def test_get_session_wraps_database_errors(monkeypatch):
    monkeypatch.setattr(
        session_repository,
        "get_session_snapshot",
        AsyncMock(side_effect=DatabaseError("down")),
    )

    with pytest.raises(ReminderServiceError) as exc:
        await reminder_service.get_session("session-1")

    assert not isinstance(exc.value, SessionNotFoundError)


@pytest.mark.asyncio
async def test_schedule_reminders_uses_recommendation(monkeypatch, make_session):
    _patch_session(monkeypatch, make_session(created_at=T0, project_priority="high"))
    update_mock = AsyncMock(return_value=True)
    monkeypatch.setattr(session_repository, "update_reminder_settings", update_mock)

    plan = await reminder_service.schedule_reminders("session-1")

    assert plan.profile == "aggressive"
    assert [r.scheduled_at for r in plan.reminders] == [
        T0 + timedelta(days=1),
        T0 + timedelta(days=3),
        T0 + timedelta(days=5),
    ]
    update_mock.assert_awaited_once_with(
        "session-1",
        reminder_schedule="aggressive",
        reminder_enabled=True,
        custom_schedule=None,
    )


@pytest.mark.asyncio
async def test_schedule_reminders_custom(monkeypatch, make_session):
    _patch_session(monkeypatch, make_session(created_at=T0))
    update_mock = AsyncMock(return_value=True)
    monkeypatch.setattr(session_repository, "update_reminder_settings", update_mock)
    raw = [{"kind": "gentle", "days_after_creation": 1, "hours_after_creation": 2}]

    plan = await reminder_service.schedule_reminders("session-1", "custom", raw)

    assert plan.reminders[0].scheduled_at == T0 + timedelta(days=1, hours=2)
    assert update_mock.await_args.kwargs["custom_schedule"] == [
        {"kind": "gentle", "days_after_creation": 1, "hours_after_creation": 2}
    ]


@pytest.mark.asyncio
async def test_schedule_reminders_custom_requires_entries(monkeypatch, make_session):
    _patch_session(monkeypatch, make_session())
    update_mock = AsyncMock()
    monkeypatch.setattr(session_repository, "update_reminder_settings", update_mock)

    with pytest.raises(ReminderScheduleError):
        await reminder_service.schedule_reminders("session-1", "custom", [])

    update_mock.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_schedule_cancels_in_flight_first(monkeypatch, make_session):
    _patch_session(monkeypatch, make_session(created_at=T0))
    cancel_mock = AsyncMock(return_value=2)
    monkeypatch.setattr(reminder_repository, "cancel_session_reminders", cancel_mock)
    monkeypatch.setattr(session_repository, "update_reminder_settings", AsyncMock(return_value=True))

    plan = await reminder_service.update_reminder_schedule("session-1", "gentle")

    cancel_mock.assert_awaited_once_with("session-1")
    assert plan.profile == "gentle"


@pytest.mark.asyncio
async def test_update_schedule_rejects_invalid_custom_list_without_cancelling(
    monkeypatch, make_session
):
    _patch_session(monkeypatch, make_session(created_at=T0))
    cancel_mock = AsyncMock(return_value=2)
    update_mock = AsyncMock(return_value=True)
    monkeypatch.setattr(reminder_repository, "cancel_session_reminders", cancel_mock)
    monkeypatch.setattr(session_repository, "update_reminder_settings", update_mock)

    with pytest.raises(ReminderScheduleError):
        await reminder_service.update_reminder_schedule("session-1", "custom", None)

    cancel_mock.assert_not_awaited()
    update_mock.assert_not_awaited()


@pytest.mark.asyncio
async def test_cancel_reminders_disables_session(monkeypatch, make_session):
    _patch_session(monkeypatch, make_session())
    monkeypatch.setattr(reminder_repository, "cancel_session_reminders", AsyncMock(return_value=1))
    update_mock = AsyncMock(return_value=True)
    monkeypatch.setattr(session_repository, "update_reminder_settings", update_mock)

    assert await reminder_service.cancel_reminders("session-1") == 1
    update_mock.assert_awaited_once_with("session-1", reminder_enabled=False)


@pytest.fixture
def manual_repos(monkeypatch):
    mocks = {
        "create_manual_reminder": AsyncMock(return_value=_record()),
        "mark_reminder_sent": AsyncMock(return_value=True),
        "mark_reminder_failed": AsyncMock(return_value=True),
        "get_reminder_by_id": AsyncMock(return_value=_record(status="sent")),
    }
    for name, mock in mocks.items():
        monkeypatch.setattr(reminder_repository, name, mock)
    mocks["record_reminder_sent"] = AsyncMock(return_value=None)
    monkeypatch.setattr(session_repository, "record_reminder_sent", mocks["record_reminder_sent"])
    return mocks


@pytest.mark.asyncio
async def test_send_manual_gentle_reminder(monkeypatch, make_session, manual_repos):
    _patch_session(monkeypatch, make_session())
    delivery = AsyncMock()
    delivery.deliver.return_value = DeliveryResult(True, "Email sent successfully", "email-9")

    record = await reminder_service.send_manual_reminder("session-1", delivery=delivery)

    assert record.status == "sent"
    assert manual_repos["create_manual_reminder"].await_args.args[1] == "gentle"
    manual_repos["mark_reminder_sent"].assert_awaited_once()
    manual_repos["record_reminder_sent"].assert_awaited_once_with("session-1")


@pytest.mark.asyncio
async def test_send_manual_custom_reminder(monkeypatch, make_session, manual_repos):
    _patch_session(monkeypatch, make_session())
    delivery = AsyncMock()
    delivery.deliver.return_value = DeliveryResult(True, "Email sent successfully")

    await reminder_service.send_manual_reminder(
        "session-1", "Quick question", "Can you upload your logo?", delivery=delivery
    )

    message = delivery.deliver.await_args.args[0]
    assert message.subject == "Quick question"
    assert "Can you upload your logo?" in message.text
    assert manual_repos["create_manual_reminder"].await_args.args[1] == "custom"


@pytest.mark.asyncio
async def test_send_manual_custom_needs_both_fields(monkeypatch, make_session, manual_repos):
    _patch_session(monkeypatch, make_session())

    with pytest.raises(InvalidReminderRequestError):
        await reminder_service.send_manual_reminder(
            "session-1", custom_subject="Subject only", delivery=AsyncMock()
        )

    manual_repos["create_manual_reminder"].assert_not_awaited()


@pytest.mark.asyncio
async def test_send_manual_delivery_failure(monkeypatch, make_session, manual_repos):
    _patch_session(monkeypatch, make_session())
    delivery = AsyncMock()
    delivery.deliver.return_value = DeliveryResult(False, "Email service not configured")

    with pytest.raises(ReminderServiceError):
        await reminder_service.send_manual_reminder("session-1", delivery=delivery)

    manual_repos["mark_reminder_failed"].assert_awaited_once_with(
        "rem-1", "Email service not configured"
    )
    manual_repos["record_reminder_sent"].assert_not_awaited()


@pytest.mark.asyncio
async def test_send_manual_without_client_email(monkeypatch, make_session, manual_repos):
    _patch_session(monkeypatch, make_session(client_email=None))
    delivery = AsyncMock()

    with pytest.raises(ReminderServiceError) as exc:
        await reminder_service.send_manual_reminder("session-1", delivery=delivery)

    assert exc.value.recoverable is False
    delivery.deliver.assert_not_awaited()
    manual_repos["mark_reminder_failed"].assert_awaited_once()


@pytest.mark.asyncio
async def test_get_session_reminders_timeline(monkeypatch, make_session):
    _patch_session(monkeypatch, make_session(created_at=T0))
    sent = _record(reminder_type="gentle", status="sent", is_manual=False)
    monkeypatch.setattr(reminder_repository, "get_session_reminders", AsyncMock(return_value=[sent]))
    monkeypatch.setattr(
        reminder_repository, "get_sent_reminder_kinds", AsyncMock(return_value={"gentle"})
    )

    history = await reminder_service.get_session_reminders(
        "session-1", now=T0 + timedelta(days=6)
    )

    assert history.reminders == [sent]
    assert [(t.kind, t.sent, t.due) for t in history.timeline] == [
        ("gentle", True, True),
        ("encouragement", False, True),
        ("final", False, False),
    ]
    assert history.timeline[0].label == "Gentle Reminder"


@pytest.mark.asyncio
async def test_get_session_reminders_with_broken_custom_schedule(monkeypatch, make_session):
    _patch_session(monkeypatch, make_session(reminder_schedule="custom"))
    monkeypatch.setattr(reminder_repository, "get_session_reminders", AsyncMock(return_value=[]))
    monkeypatch.setattr(reminder_repository, "get_sent_reminder_kinds", AsyncMock(return_value=set()))

    history = await reminder_service.get_session_reminders("session-1", now=T0)

    assert history.timeline == []


@pytest.mark.asyncio
async def test_reminder_analytics_rates(monkeypatch):
    stats = {
        "total": 10,
        "by_status": {"processing": 0, "sent": 8, "failed": 2, "cancelled": 0},
        "by_type": {"gentle": 6, "final": 4},
        "opened": 3,
        "clicked": 1,
    }
    monkeypatch.setattr(reminder_repository, "get_reminder_stats", AsyncMock(return_value=stats))

    analytics = await reminder_service.get_reminder_analytics()

    assert analytics["open_rate"] == "37.5%"
    assert analytics["click_rate"] == "12.5%"


@pytest.mark.asyncio
async def test_reminder_analytics_nothing_sent(monkeypatch):
    stats = {"total": 0, "by_status": {}, "by_type": {}, "opened": 0, "clicked": 0}
    monkeypatch.setattr(reminder_repository, "get_reminder_stats", AsyncMock(return_value=stats))

    analytics = await reminder_service.get_reminder_analytics()

    assert analytics["open_rate"] == "0%"
    assert analytics["click_rate"] == "0%"


@pytest.mark.asyncio
async def test_track_click_returns_onboarding_url(monkeypatch, make_session):
    monkeypatch.setattr(reminder_repository, "track_reminder_click", AsyncMock(return_value=True))
    monkeypatch.setattr(reminder_repository, "get_reminder_by_id", AsyncMock(return_value=_record()))
    _patch_session(monkeypatch, make_session())
    monkeypatch.setattr(settings, "APP_BASE_URL", "https://app.example.com")

    url = await reminder_service.track_reminder_click("rem-1")

    assert url == "https://app.example.com/onboarding/tok-abc"


@pytest.mark.asyncio
async def test_track_click_unknown_reminder(monkeypatch):
    monkeypatch.setattr(reminder_repository, "track_reminder_click", AsyncMock(return_value=False))

    assert await reminder_service.track_reminder_click("missing") is None
