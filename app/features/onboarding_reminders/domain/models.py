"""
Domain models for the onboarding reminders feature.

Policy values (schedule configs, computed reminders, templates) are small
frozen dataclasses; anything that crosses the database or API boundary is a
pydantic model so it validates on the way in.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

ReminderKind = Literal["initial", "gentle", "encouragement", "final", "custom"]
CadenceProfile = Literal["standard", "aggressive", "gentle", "custom"]
SessionStatus = Literal["pending", "in_progress", "completed", "abandoned"]
ReminderStatus = Literal["processing", "sent", "failed", "cancelled"]
ProjectPriority = Literal["low", "medium", "high", "critical"]
SuppressionReason = Literal["completed", "expired", "recently_active"]

REMINDER_KINDS: tuple[str, ...] = ("initial", "gentle", "encouragement", "final", "custom")
CADENCE_PROFILES: tuple[str, ...] = ("standard", "aggressive", "gentle", "custom")
REMINDER_STATUSES: tuple[str, ...] = ("processing", "sent", "failed", "cancelled")


@dataclass(frozen=True, slots=True)
class ReminderScheduleConfig:
    """One catalog entry: which reminder fires how long after session creation."""

    kind: ReminderKind
    days_after_creation: int
    hours_after_creation: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "days_after_creation": self.days_after_creation,
            "hours_after_creation": self.hours_after_creation,
        }


@dataclass(frozen=True, slots=True)
class ComputedReminder:
    """A reminder kind pinned to an absolute instant."""

    kind: ReminderKind
    scheduled_at: datetime


@dataclass(frozen=True, slots=True)
class EmailTemplate:
    subject: str
    html_body: str
    text_body: str


@dataclass(frozen=True, slots=True)
class EmailMessage:
    """What the delivery port needs to send one email."""

    to: str
    subject: str
    html: str
    text: str | None = None
    reply_to: str | None = None


@dataclass(frozen=True, slots=True)
class DeliveryResult:
    success: bool
    message: str
    provider_id: str | None = None


@dataclass(frozen=True, slots=True)
class ReminderDecision:
    """Outcome of evaluating one session at one instant."""

    reminder: ComputedReminder | None
    suppression_reason: SuppressionReason | None
    evaluated_at: datetime

    @property
    def should_send(self) -> bool:
        return self.reminder is not None and self.suppression_reason is None


class OnboardingSessionSnapshot(BaseModel):
    """
    Read-only view of a client onboarding session plus its project.

    Built by the session repository per invocation; the policy functions only
    read it.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    access_token: str
    project_name: str = "your project"
    organization_name: str = "Organization"
    status: SessionStatus = "pending"

    created_at: datetime
    last_activity_at: datetime | None = None
    expires_at: datetime | None = None

    # Display-only progress fields
    completion_percentage: int = Field(default=0, ge=0)
    current_step: int = Field(default=0, ge=0)
    total_steps: int = Field(default=10, ge=0)

    client_email: str | None = None
    client_name: str | None = None
    organization_id: str | None = None
    owner_id: str | None = None
    project_priority: ProjectPriority | None = None
    project_budget: float | None = None

    # Reminder settings stored on the session
    reminder_schedule: CadenceProfile = "standard"
    reminder_enabled: bool = True
    reminder_custom_schedule: list[dict[str, Any]] | None = None
    reminder_count: int = 0
    last_reminder_sent_at: datetime | None = None


class ReminderRecord(BaseModel):
    """One row of the onboarding_reminders ledger."""

    model_config = ConfigDict(extra="ignore")

    id: str
    session_id: str
    reminder_type: ReminderKind
    status: ReminderStatus
    scheduled_at: datetime
    sent_at: datetime | None = None
    email_subject: str | None = None
    error_message: str | None = None
    attempts: int = 1
    is_manual: bool = False
    metadata: dict[str, Any] | None = None
    opened_at: datetime | None = None
    clicked_at: datetime | None = None
    created_at: datetime | None = None


@dataclass(slots=True)
class ReminderPlan:
    """Result of (re)scheduling a session's reminders."""

    session_id: str
    profile: CadenceProfile
    reminders: list[ComputedReminder]


@dataclass(frozen=True, slots=True)
class UpcomingReminder:
    kind: ReminderKind
    label: str
    scheduled_at: datetime
    sent: bool
    due: bool


@dataclass(slots=True)
class ReminderHistory:
    """Ledger rows plus the computed timeline for one session."""

    session_id: str
    profile: CadenceProfile
    enabled: bool
    reminders: list[ReminderRecord]
    timeline: list[UpcomingReminder]
