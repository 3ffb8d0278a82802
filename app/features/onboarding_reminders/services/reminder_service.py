"""
Reminder service: scheduling, manual sends, history and analytics.

Service layer returns domain models only - API layer handles HTTP concerns.
Policy errors (ReminderScheduleError, InvalidReminderRequestError) propagate
unchanged; database failures are wrapped in ReminderServiceError.
"""

from datetime import datetime
from typing import Any

from app.db.helpers import DatabaseError
from app.features.onboarding_reminders.domain.errors import (
    ReminderPolicyError,
    ReminderServiceError,
    SessionNotFoundError,
)
from app.features.onboarding_reminders.domain.models import (
    CadenceProfile,
    EmailMessage,
    OnboardingSessionSnapshot,
    ReminderHistory,
    ReminderPlan,
    ReminderRecord,
    ReminderScheduleConfig,
    UpcomingReminder,
)
from app.features.onboarding_reminders.policy.catalog import (
    format_reminder_kind,
    parse_custom_schedule,
)
from app.features.onboarding_reminders.policy.recommendation import get_recommended_schedule
from app.features.onboarding_reminders.policy.scheduler import generate_reminder_schedule
from app.features.onboarding_reminders.policy.timing import is_reminder_due, utcnow
from app.features.onboarding_reminders.repository import (
    reminder_repository,
    session_repository,
)
from app.features.onboarding_reminders.services.delivery import (
    EmailDeliveryPort,
    get_email_delivery,
)
from app.features.onboarding_reminders.services.email_templates import (
    get_onboarding_url,
    get_reminder_email_template,
)
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


async def get_session(session_id: str) -> OnboardingSessionSnapshot:
    """Load a session or raise SessionNotFoundError."""
    try:
        session = await session_repository.get_session_snapshot(session_id)
    except DatabaseError as e:
        logger.error("Database error loading session", session_id=session_id, error=str(e))
        raise ReminderServiceError(
            f"Database error loading session: {e}", session_id=session_id
        ) from e

    if session is None:
        logger.warning("Onboarding session not found", session_id=session_id)
        raise SessionNotFoundError(session_id)

    return session


async def get_member_role(user_id: str, organization_id: str | None) -> str | None:
    try:
        return await session_repository.get_member_role(user_id, organization_id)
    except DatabaseError as e:
        logger.error("Database error loading member role", user_id=user_id, error=str(e))
        raise ReminderServiceError(f"Failed to load member role: {e}") from e


def session_custom_schedule(
    session: OnboardingSessionSnapshot,
) -> list[ReminderScheduleConfig] | None:
    """Stored custom schedule for sessions on the custom profile."""
    if session.reminder_schedule != "custom":
        return None
    return parse_custom_schedule(session.reminder_custom_schedule)


async def schedule_reminders(
    session_id: str,
    profile: CadenceProfile | None = None,
    custom_schedule: list[dict[str, Any]] | None = None,
) -> ReminderPlan:
    """
    Enable reminders for a session on a cadence profile.

    Args:
        session_id: Onboarding session id
        profile: Cadence profile; recommended from project priority/budget when None
        custom_schedule: Raw entries, required when profile is "custom"

    Returns:
        ReminderPlan with the computed timeline

    Raises:
        SessionNotFoundError: Unknown session
        ReminderScheduleError / ReminderPolicyError: Unusable profile or custom list
        ReminderServiceError: Database failure
    """
    session = await get_session(session_id)
    plan, configs = _build_plan(session, profile, custom_schedule)
    await _save_plan(plan, configs)

    logger.info(
        "Reminders scheduled",
        session_id=session_id,
        profile=plan.profile,
        recommended=profile is None,
        reminders=[r.kind for r in plan.reminders],
    )
    return plan


def _build_plan(
    session: OnboardingSessionSnapshot,
    profile: CadenceProfile | None,
    custom_schedule: list[dict[str, Any]] | None,
) -> tuple[ReminderPlan, list[ReminderScheduleConfig] | None]:
    """Resolve the profile and compute the timeline; raises on an unusable schedule."""
    resolved: CadenceProfile = profile or get_recommended_schedule(
        session.project_priority, session.project_budget
    )
    configs = parse_custom_schedule(custom_schedule) if resolved == "custom" else None
    timeline = generate_reminder_schedule(session.created_at, resolved, configs)
    return ReminderPlan(session_id=session.id, profile=resolved, reminders=timeline), configs


async def _save_plan(plan: ReminderPlan, configs: list[ReminderScheduleConfig] | None) -> None:
    try:
        await session_repository.update_reminder_settings(
            plan.session_id,
            reminder_schedule=plan.profile,
            reminder_enabled=True,
            custom_schedule=[config.to_dict() for config in configs] if configs else None,
        )
    except DatabaseError as e:
        logger.error(
            "Database error scheduling reminders", session_id=plan.session_id, error=str(e)
        )
        raise ReminderServiceError(
            f"Failed to schedule reminders: {e}", session_id=plan.session_id
        ) from e


async def update_reminder_schedule(
    session_id: str,
    profile: CadenceProfile,
    custom_schedule: list[dict[str, Any]] | None = None,
) -> ReminderPlan:
    """
    Switch a session to another cadence, dropping in-flight attempts.

    The new schedule is validated before anything is cancelled, so a rejected
    request leaves the session untouched.
    """
    session = await get_session(session_id)
    plan, configs = _build_plan(session, profile, custom_schedule)

    try:
        cancelled = await reminder_repository.cancel_session_reminders(session_id)
    except DatabaseError as e:
        raise ReminderServiceError(
            f"Failed to cancel reminders: {e}", session_id=session_id
        ) from e

    await _save_plan(plan, configs)
    logger.info(
        "Reminders rescheduled",
        session_id=session_id,
        profile=plan.profile,
        cancelled=cancelled,
    )
    return plan


async def cancel_reminders(session_id: str) -> int:
    """Disable reminders for a session. Returns the number of rows cancelled."""
    await get_session(session_id)

    try:
        cancelled = await reminder_repository.cancel_session_reminders(session_id)
        await session_repository.update_reminder_settings(session_id, reminder_enabled=False)
    except DatabaseError as e:
        logger.error("Database error cancelling reminders", session_id=session_id, error=str(e))
        raise ReminderServiceError(
            f"Failed to cancel reminders: {e}", session_id=session_id
        ) from e

    logger.info("Reminders cancelled", session_id=session_id, cancelled=cancelled)
    return cancelled


async def send_manual_reminder(
    session_id: str,
    custom_subject: str | None = None,
    custom_message: str | None = None,
    *,
    delivery: EmailDeliveryPort | None = None,
    now: datetime | None = None,
) -> ReminderRecord:
    """
    Send a reminder right away, outside the cadence.

    A custom email when a subject or message is given (both are then
    required), otherwise the gentle reminder. Manual sends never count
    towards the automated kinds.

    Raises:
        InvalidReminderRequestError: Only one of subject/message supplied
        ReminderServiceError: No client email, delivery or database failure
    """
    session = await get_session(session_id)
    kind = "custom" if (custom_subject or custom_message) else "gentle"

    template = get_reminder_email_template(
        kind, session, session.client_name, custom_subject, custom_message, now=now
    )

    delivery = delivery or get_email_delivery()

    try:
        record = await reminder_repository.create_manual_reminder(
            session_id,
            kind,
            template.subject,
            template.html_body,
            metadata={"manual": True, "text_body": template.text_body},
        )

        if not session.client_email:
            await reminder_repository.mark_reminder_failed(record.id, "Session has no client email")
            logger.warning("Manual reminder not delivered - no client email", session_id=session_id)
            raise ReminderServiceError(
                "Session has no client email", session_id=session_id, recoverable=False
            )

        result = await delivery.deliver(
            EmailMessage(
                to=session.client_email,
                subject=template.subject,
                html=template.html_body,
                text=template.text_body,
            )
        )

        if not result.success:
            await reminder_repository.mark_reminder_failed(record.id, result.message)
            logger.warning(
                "Manual reminder delivery failed", session_id=session_id, error=result.message
            )
            raise ReminderServiceError(
                f"Failed to send reminder: {result.message}", session_id=session_id
            )

        await reminder_repository.mark_reminder_sent(
            record.id,
            template.subject,
            template.html_body,
            metadata={"provider_id": result.provider_id},
        )
        await session_repository.record_reminder_sent(session_id)
        updated = await reminder_repository.get_reminder_by_id(record.id)

    except DatabaseError as e:
        logger.error("Database error sending manual reminder", session_id=session_id, error=str(e))
        raise ReminderServiceError(f"Failed to send reminder: {e}", session_id=session_id) from e

    logger.info("Manual reminder sent", session_id=session_id, kind=kind, reminder_id=record.id)
    return updated or record


async def get_session_reminders(
    session_id: str, *, now: datetime | None = None
) -> ReminderHistory:
    """Ledger rows plus the session's computed timeline."""
    session = await get_session(session_id)
    current = now or utcnow()

    try:
        records = await reminder_repository.get_session_reminders(session_id)
        sent_kinds = await reminder_repository.get_sent_reminder_kinds(session_id)
    except DatabaseError as e:
        raise ReminderServiceError(
            f"Failed to fetch reminders: {e}", session_id=session_id
        ) from e

    timeline: list[UpcomingReminder] = []
    try:
        computed = generate_reminder_schedule(
            session.created_at, session.reminder_schedule, session_custom_schedule(session)
        )
    except ReminderPolicyError as e:
        # A broken stored custom schedule should not hide the ledger
        logger.warning("Could not compute reminder timeline", session_id=session_id, error=str(e))
        computed = []

    for reminder in computed:
        timeline.append(
            UpcomingReminder(
                kind=reminder.kind,
                label=format_reminder_kind(reminder.kind),
                scheduled_at=reminder.scheduled_at,
                sent=reminder.kind in sent_kinds,
                due=is_reminder_due(reminder.scheduled_at, now=current),
            )
        )

    return ReminderHistory(
        session_id=session_id,
        profile=session.reminder_schedule,
        enabled=session.reminder_enabled,
        reminders=records,
        timeline=timeline,
    )


def _format_rate(count: int, sent: int) -> str:
    if sent <= 0:
        return "0%"
    return f"{count / sent * 100:.1f}%"


async def get_reminder_analytics() -> dict[str, Any]:
    """Counts by status and type with open/click rates over sent reminders."""
    try:
        stats = await reminder_repository.get_reminder_stats()
    except DatabaseError as e:
        logger.error("Database error fetching reminder analytics", error=str(e))
        raise ReminderServiceError(f"Failed to fetch analytics: {e}") from e

    sent = stats["by_status"].get("sent", 0)
    stats["open_rate"] = _format_rate(stats["opened"], sent)
    stats["click_rate"] = _format_rate(stats["clicked"], sent)
    return stats


async def track_reminder_open(reminder_id: str) -> bool:
    try:
        return await reminder_repository.track_reminder_open(reminder_id)
    except DatabaseError as e:
        logger.error("Failed to track reminder open", reminder_id=reminder_id, error=str(e))
        return False


async def track_reminder_click(reminder_id: str) -> str | None:
    """Record a click and return the onboarding URL to send the client to."""
    try:
        tracked = await reminder_repository.track_reminder_click(reminder_id)
        if not tracked:
            return None
        record = await reminder_repository.get_reminder_by_id(reminder_id)
        if record is None:
            return None
        session = await session_repository.get_session_snapshot(record.session_id)
    except DatabaseError as e:
        logger.error("Failed to track reminder click", reminder_id=reminder_id, error=str(e))
        return None

    return get_onboarding_url(session.access_token) if session else None
