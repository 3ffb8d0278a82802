"""
Default cadence selection from project characteristics.
"""

from app.features.onboarding_reminders.domain.models import CadenceProfile

HIGH_BUDGET_THRESHOLD = 50_000


def get_recommended_schedule(
    priority: str | None = None, budget: float | None = None
) -> CadenceProfile:
    """
    Pick a cadence profile when a session's reminders are first scheduled.

    High-priority or high-budget projects get the aggressive cadence,
    low-priority ones the gentle cadence, everything else standard.
    """
    if priority in ("critical", "high"):
        return "aggressive"

    if budget is not None and budget > HIGH_BUDGET_THRESHOLD:
        return "aggressive"

    if priority == "low":
        return "gentle"

    return "standard"
