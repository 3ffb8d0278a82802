"""
Request and response models for the onboarding reminder endpoints.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from app.features.onboarding_reminders.domain.models import (
    CadenceProfile,
    ReminderHistory,
    ReminderKind,
    ReminderPlan,
    ReminderRecord,
)


class CustomScheduleEntry(BaseModel):
    kind: ReminderKind
    days_after_creation: int = Field(..., ge=0)
    hours_after_creation: int | None = Field(default=None, ge=0)


class ScheduleRemindersRequest(BaseModel):
    """Body for POST/PUT /onboarding/reminders/{session_id}/schedule"""

    profile: CadenceProfile | None = Field(
        default=None, description="Cadence profile; recommended from the project when omitted"
    )
    custom_schedule: list[CustomScheduleEntry] | None = None

    def raw_custom_schedule(self) -> list[dict[str, Any]] | None:
        if self.custom_schedule is None:
            return None
        return [entry.model_dump() for entry in self.custom_schedule]


class ManualReminderRequest(BaseModel):
    """Body for POST /onboarding/reminders/{session_id}/send"""

    custom_subject: str | None = Field(default=None, max_length=200)
    custom_message: str | None = Field(default=None, max_length=5000)


class ScheduledReminderResponse(BaseModel):
    kind: ReminderKind
    scheduled_at: datetime


class ScheduleRemindersResponse(BaseModel):
    success: bool
    session_id: str
    profile: CadenceProfile
    reminders: list[ScheduledReminderResponse]

    @classmethod
    def from_plan(cls, plan: ReminderPlan) -> "ScheduleRemindersResponse":
        return cls(
            success=True,
            session_id=plan.session_id,
            profile=plan.profile,
            reminders=[
                ScheduledReminderResponse(kind=r.kind, scheduled_at=r.scheduled_at)
                for r in plan.reminders
            ],
        )


class CancelRemindersResponse(BaseModel):
    success: bool
    cancelled: int


class ManualReminderResponse(BaseModel):
    success: bool
    message: str
    reminder: ReminderRecord


class TimelineEntryResponse(BaseModel):
    kind: ReminderKind
    label: str
    scheduled_at: datetime
    sent: bool
    due: bool


class SessionRemindersResponse(BaseModel):
    session_id: str
    profile: CadenceProfile
    enabled: bool
    reminders: list[ReminderRecord]
    timeline: list[TimelineEntryResponse]

    @classmethod
    def from_history(cls, history: ReminderHistory) -> "SessionRemindersResponse":
        return cls(
            session_id=history.session_id,
            profile=history.profile,
            enabled=history.enabled,
            reminders=history.reminders,
            timeline=[
                TimelineEntryResponse(
                    kind=t.kind,
                    label=t.label,
                    scheduled_at=t.scheduled_at,
                    sent=t.sent,
                    due=t.due,
                )
                for t in history.timeline
            ],
        )


class ReminderAnalyticsResponse(BaseModel):
    total: int
    by_status: dict[str, int]
    by_type: dict[str, int]
    opened: int
    clicked: int
    open_rate: str
    click_rate: str
