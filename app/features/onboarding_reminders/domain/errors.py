"""
Exception types for the onboarding reminders feature.
"""


class ReminderPolicyError(Exception):
    """Raised by the pure policy functions on invalid input."""

    def __init__(self, message: str, recoverable: bool = False):
        super().__init__(message)
        self.recoverable = recoverable


class ReminderScheduleError(ReminderPolicyError):
    """Cadence profile cannot be resolved to a usable schedule."""


class InvalidReminderRequestError(ReminderPolicyError):
    """Template request is missing required input (custom subject/message)."""


class ReminderServiceError(Exception):
    """Custom exception for reminder service operations."""

    def __init__(self, message: str, session_id: str | None = None, recoverable: bool = True):
        super().__init__(message)
        self.session_id = session_id
        self.recoverable = recoverable


class SessionNotFoundError(ReminderServiceError):
    """Onboarding session does not exist."""

    def __init__(self, session_id: str):
        super().__init__("Session not found", session_id=session_id, recoverable=False)
