"""
Job runners for onboarding reminders.
"""

from .send_reminders_job import run_reminder_cleanup, start_send_reminders_scheduler

__all__ = ["start_send_reminders_scheduler", "run_reminder_cleanup"]
