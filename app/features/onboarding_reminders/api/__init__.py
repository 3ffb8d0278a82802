"""
HTTP routers for onboarding reminders.
"""

from .cron import router as cron_router
from .router import router as reminders_router

__all__ = ["cron_router", "reminders_router"]
