"""
Read access to client onboarding sessions and their reminder settings.

Session lifecycle (status, progress, activity) is owned by the onboarding
flow; this repository only reads it and writes the reminder_* columns.
"""

import json
from typing import Any

from app.db.helpers import execute_query, fetch_all, fetch_one, with_db_retry
from app.features.onboarding_reminders.domain.models import OnboardingSessionSnapshot
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

_SNAPSHOT_COLUMNS = """
    s.id::text AS id,
    s.access_token::text AS access_token,
    s.organization_id::text AS organization_id,
    s.status::text AS status,
    s.created_at,
    s.last_activity_at,
    s.expires_at,
    s.completion_percentage,
    s.current_step,
    CASE WHEN jsonb_typeof(s.steps) = 'array' THEN jsonb_array_length(s.steps) ELSE 10 END
        AS total_steps,
    s.client_email,
    s.client_name,
    s.reminder_schedule::text AS reminder_schedule,
    s.reminder_enabled,
    s.reminder_custom_schedule,
    s.reminder_count,
    s.last_reminder_sent_at,
    COALESCE(p.name, 'your project') AS project_name,
    p.priority::text AS project_priority,
    p.budget AS project_budget,
    COALESCE(p.assigned_to, p.created_by) AS owner_id,
    COALESCE(o.name, 'Organization') AS organization_name
"""

_SNAPSHOT_FROM = """
FROM client_onboarding_sessions s
LEFT JOIN projects p ON p.id = s.project_id
LEFT JOIN organizations o ON o.id = s.organization_id
"""


def _row_to_snapshot(row: dict[str, Any]) -> OnboardingSessionSnapshot:
    data = dict(row)
    if data.get("project_budget") is not None:
        data["project_budget"] = float(data["project_budget"])
    if data.get("reminder_schedule") is None:
        data["reminder_schedule"] = "standard"
    return OnboardingSessionSnapshot.model_validate(data)


@with_db_retry(max_retries=3, base_delay=0.1)
async def get_session_snapshot(session_id: str) -> OnboardingSessionSnapshot | None:
    """Load one session with its project display data, or None."""
    query = f"SELECT {_SNAPSHOT_COLUMNS} {_SNAPSHOT_FROM} WHERE s.id = %s"
    row = await fetch_one(query, (session_id,))
    return _row_to_snapshot(row) if row else None


@with_db_retry(max_retries=3, base_delay=0.1)
async def list_reminder_candidates(limit: int = 100) -> list[OnboardingSessionSnapshot]:
    """
    Sessions the dispatch job should evaluate this tick.

    Open, unexpired sessions with reminders enabled and a client address.
    Sessions on a built-in profile that already received all three kinds are
    left out. The rest rotate on reminder_evaluated_at, least recently
    evaluated first, so a backlog larger than the batch still gets through.
    """
    query = f"""
    SELECT {_SNAPSHOT_COLUMNS} {_SNAPSHOT_FROM}
    WHERE s.status IN ('pending', 'in_progress')
      AND s.reminder_enabled = true
      AND s.client_email IS NOT NULL
      AND s.client_email <> ''
      AND (s.expires_at IS NULL OR s.expires_at > NOW())
      AND NOT (
          COALESCE(s.reminder_schedule::text, 'standard') <> 'custom'
          AND (
              SELECT COUNT(DISTINCT r.reminder_type)
              FROM onboarding_reminders r
              WHERE r.session_id = s.id
                AND r.is_manual = false
                AND r.status = 'sent'
                AND r.reminder_type IN ('gentle', 'encouragement', 'final')
          ) >= 3
      )
    ORDER BY s.reminder_evaluated_at ASC NULLS FIRST, s.created_at ASC
    LIMIT %s
    """
    rows = await fetch_all(query, (limit,))
    return [_row_to_snapshot(row) for row in rows]


@with_db_retry(max_retries=3, base_delay=0.1)
async def mark_sessions_evaluated(session_ids: list[str]) -> int:
    """Stamp sessions the dispatch job looked at, moving them to the back of the queue."""
    if not session_ids:
        return 0

    query = """
    UPDATE client_onboarding_sessions
    SET reminder_evaluated_at = NOW()
    WHERE id = ANY(%s::uuid[])
    """
    return await execute_query(query, (session_ids,))


@with_db_retry(max_retries=3, base_delay=0.1)
async def update_reminder_settings(
    session_id: str,
    *,
    reminder_schedule: str | None = None,
    reminder_enabled: bool | None = None,
    custom_schedule: list[dict[str, Any]] | None = None,
) -> bool:
    """
    Update the reminder_* columns that were supplied.

    custom_schedule is written only together with a reminder_schedule, and is
    cleared when that schedule is not "custom".
    """
    assignments: list[str] = []
    params: list[Any] = []

    if reminder_schedule is not None:
        assignments.append("reminder_schedule = %s")
        params.append(reminder_schedule)
        assignments.append("reminder_custom_schedule = %s::jsonb")
        params.append(json.dumps(custom_schedule) if reminder_schedule == "custom" else None)

    if reminder_enabled is not None:
        assignments.append("reminder_enabled = %s")
        params.append(reminder_enabled)

    if not assignments:
        return False

    query = f"""
    UPDATE client_onboarding_sessions
    SET {", ".join(assignments)}, updated_at = NOW()
    WHERE id = %s
    """
    params.append(session_id)

    affected_rows = await execute_query(query, tuple(params))
    logger.info(
        "Reminder settings updated",
        session_id=session_id,
        reminder_schedule=reminder_schedule,
        reminder_enabled=reminder_enabled,
        updated=affected_rows > 0,
    )
    return affected_rows > 0


@with_db_retry(max_retries=3, base_delay=0.1)
async def record_reminder_sent(session_id: str) -> None:
    """Bump the session's reminder counter and last-sent stamp."""
    query = """
    UPDATE client_onboarding_sessions
    SET reminder_count = reminder_count + 1,
        last_reminder_sent_at = NOW(),
        updated_at = NOW()
    WHERE id = %s
    """
    await execute_query(query, (session_id,))


@with_db_retry(max_retries=3, base_delay=0.1)
async def get_member_role(user_id: str, organization_id: str | None) -> str | None:
    """Role of a user inside an organization, from user_roles."""
    if not organization_id:
        return None

    query = """
    SELECT role::text AS role
    FROM user_roles
    WHERE user_id = %s AND organization_id = %s
    LIMIT 1
    """
    row = await fetch_one(query, (user_id, organization_id))
    return row["role"] if row else None
