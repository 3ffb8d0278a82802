"""
Domain subpackage for onboarding reminders feature.
"""

from .errors import (
    InvalidReminderRequestError,
    ReminderPolicyError,
    ReminderScheduleError,
    ReminderServiceError,
    SessionNotFoundError,
)
from .models import (
    CadenceProfile,
    ComputedReminder,
    DeliveryResult,
    EmailMessage,
    EmailTemplate,
    OnboardingSessionSnapshot,
    ReminderDecision,
    ReminderKind,
    ReminderRecord,
    ReminderScheduleConfig,
)

__all__ = [
    "CadenceProfile",
    "ComputedReminder",
    "DeliveryResult",
    "EmailMessage",
    "EmailTemplate",
    "InvalidReminderRequestError",
    "OnboardingSessionSnapshot",
    "ReminderDecision",
    "ReminderKind",
    "ReminderPolicyError",
    "ReminderRecord",
    "ReminderScheduleConfig",
    "ReminderScheduleError",
    "ReminderServiceError",
    "SessionNotFoundError",
]
