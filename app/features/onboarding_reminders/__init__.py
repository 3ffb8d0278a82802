"""
Onboarding reminders feature package.

Policy (what to send, when), persistence (ledger and session settings),
delivery, the dispatch job and HTTP routers all live in this vertical slice.
"""

from .api import cron_router, reminders_router  # noqa: F401
from .jobs import run_reminder_cleanup, start_send_reminders_scheduler  # noqa: F401
