"""
Pure reminder policy: catalog, timing, suppression, selection, recommendation.

Nothing in this subpackage performs I/O.
"""

from .catalog import format_reminder_kind, get_reminder_schedule, parse_custom_schedule
from .recommendation import get_recommended_schedule
from .scheduler import decide_reminder, generate_reminder_schedule, get_next_reminder
from .suppression import get_suppression_reason, is_permanent_suppression, should_send_reminder
from .timing import calculate_scheduled_time, days_until_expiration, is_reminder_due

__all__ = [
    "calculate_scheduled_time",
    "days_until_expiration",
    "decide_reminder",
    "format_reminder_kind",
    "generate_reminder_schedule",
    "get_next_reminder",
    "get_recommended_schedule",
    "get_reminder_schedule",
    "get_suppression_reason",
    "is_permanent_suppression",
    "is_reminder_due",
    "parse_custom_schedule",
    "should_send_reminder",
]
