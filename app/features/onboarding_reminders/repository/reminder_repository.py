"""
onboarding_reminders ledger.

One row per reminder attempt. Automated rows are unique per
(session_id, reminder_type) through a partial index, so claiming a kind is an
atomic insert and two scheduler ticks cannot both send the same reminder.
Manual sends are recorded with is_manual = true and sit outside that index.
"""

import json
from datetime import datetime
from typing import Any

from app.db.helpers import execute_query, fetch_all, fetch_one, with_db_retry
from app.features.onboarding_reminders.domain.models import (
    REMINDER_KINDS,
    REMINDER_STATUSES,
    ReminderRecord,
)
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

_RECORD_COLUMNS = """
    id::text AS id,
    session_id::text AS session_id,
    reminder_type,
    status,
    scheduled_at,
    sent_at,
    email_subject,
    error_message,
    attempts,
    is_manual,
    metadata,
    opened_at,
    clicked_at,
    created_at
"""


@with_db_retry(max_retries=3, base_delay=0.1)
async def get_sent_reminder_kinds(session_id: str) -> set[str]:
    """Automated kinds already delivered for a session."""
    query = """
    SELECT reminder_type
    FROM onboarding_reminders
    WHERE session_id = %s AND status = 'sent' AND is_manual = false
    """
    rows = await fetch_all(query, (session_id,))
    return {row["reminder_type"] for row in rows}


@with_db_retry(max_retries=3, base_delay=0.1)
async def claim_reminder(
    session_id: str, kind: str, scheduled_at: datetime, lease_minutes: int = 15
) -> str | None:
    """
    Reserve an automated reminder kind for delivery.

    Inserts a 'processing' row, or re-arms a failed or cancelled one. A
    'processing' row untouched for longer than the lease belongs to a worker
    that died mid-send and is re-armed too. Returns the row id, or None when
    the kind is sent or held by a live claim.
    """
    query = """
    INSERT INTO onboarding_reminders (
        session_id, reminder_type, status, scheduled_at, attempts, is_manual
    ) VALUES (
        %s, %s, 'processing', %s, 1, false
    )
    ON CONFLICT (session_id, reminder_type) WHERE is_manual = false
    DO UPDATE SET
        status = 'processing',
        attempts = onboarding_reminders.attempts + 1,
        error_message = NULL,
        updated_at = NOW()
    WHERE onboarding_reminders.status IN ('failed', 'cancelled')
       OR (
           onboarding_reminders.status = 'processing'
           AND onboarding_reminders.updated_at < NOW() - make_interval(mins => %s)
       )
    RETURNING id::text AS id
    """
    row = await fetch_one(query, (session_id, kind, scheduled_at, lease_minutes))
    return row["id"] if row else None


@with_db_retry(max_retries=3, base_delay=0.1)
async def create_manual_reminder(
    session_id: str,
    kind: str,
    subject: str,
    html_body: str,
    metadata: dict[str, Any] | None = None,
) -> ReminderRecord:
    query = f"""
    INSERT INTO onboarding_reminders (
        session_id, reminder_type, status, scheduled_at, email_subject, email_body,
        metadata, attempts, is_manual
    ) VALUES (
        %s, %s, 'processing', NOW(), %s, %s, %s::jsonb, 1, true
    )
    RETURNING {_RECORD_COLUMNS}
    """
    row = await fetch_one(
        query,
        (session_id, kind, subject, html_body, json.dumps(metadata) if metadata else None),
    )
    return ReminderRecord.model_validate(row)


@with_db_retry(max_retries=3, base_delay=0.1)
async def mark_reminder_sent(
    reminder_id: str,
    subject: str,
    html_body: str,
    metadata: dict[str, Any] | None = None,
) -> bool:
    """
    Record a delivered email.

    A row cancelled while its email was in flight is still marked sent, since
    the email went out. False means the row is gone or already sent.
    """
    query = """
    UPDATE onboarding_reminders
    SET status = 'sent',
        sent_at = NOW(),
        email_subject = %s,
        email_body = %s,
        metadata = COALESCE(metadata, '{}'::jsonb) || COALESCE(%s::jsonb, '{}'::jsonb),
        updated_at = NOW()
    WHERE id = %s AND status IN ('processing', 'cancelled')
    """
    affected_rows = await execute_query(
        query, (subject, html_body, json.dumps(metadata) if metadata else None, reminder_id)
    )
    return affected_rows > 0


@with_db_retry(max_retries=3, base_delay=0.1)
async def mark_reminder_failed(reminder_id: str, error: str) -> bool:
    query = """
    UPDATE onboarding_reminders
    SET status = 'failed',
        error_message = %s,
        updated_at = NOW()
    WHERE id = %s AND status = 'processing'
    """
    affected_rows = await execute_query(query, (error[:1000], reminder_id))
    return affected_rows > 0


@with_db_retry(max_retries=3, base_delay=0.1)
async def cancel_session_reminders(session_id: str) -> int:
    """Cancel in-flight and failed automated rows so they are not retried."""
    query = """
    UPDATE onboarding_reminders
    SET status = 'cancelled', updated_at = NOW()
    WHERE session_id = %s
      AND is_manual = false
      AND status IN ('processing', 'failed')
    """
    return await execute_query(query, (session_id,))


@with_db_retry(max_retries=3, base_delay=0.1)
async def get_session_reminders(session_id: str) -> list[ReminderRecord]:
    query = f"""
    SELECT {_RECORD_COLUMNS}
    FROM onboarding_reminders
    WHERE session_id = %s
    ORDER BY scheduled_at DESC
    """
    rows = await fetch_all(query, (session_id,))
    return [ReminderRecord.model_validate(row) for row in rows]


@with_db_retry(max_retries=3, base_delay=0.1)
async def get_reminder_by_id(reminder_id: str) -> ReminderRecord | None:
    query = f"SELECT {_RECORD_COLUMNS} FROM onboarding_reminders WHERE id = %s"
    row = await fetch_one(query, (reminder_id,))
    return ReminderRecord.model_validate(row) if row else None


@with_db_retry(max_retries=3, base_delay=0.1)
async def get_reminder_stats() -> dict[str, Any]:
    """Raw counts for analytics; rates are computed in the service layer."""
    status_rows = await fetch_all(
        "SELECT status, COUNT(*) AS count FROM onboarding_reminders GROUP BY status"
    )
    type_rows = await fetch_all(
        "SELECT reminder_type, COUNT(*) AS count FROM onboarding_reminders GROUP BY reminder_type"
    )
    engagement = await fetch_one(
        """
        SELECT
            COUNT(*) AS total,
            COUNT(opened_at) AS opened,
            COUNT(clicked_at) AS clicked
        FROM onboarding_reminders
        """
    )

    by_status = dict.fromkeys(REMINDER_STATUSES, 0)
    by_status.update({row["status"]: row["count"] for row in status_rows})
    by_type = dict.fromkeys(REMINDER_KINDS, 0)
    by_type.update({row["reminder_type"]: row["count"] for row in type_rows})

    return {
        "total": engagement["total"] if engagement else 0,
        "by_status": by_status,
        "by_type": by_type,
        "opened": engagement["opened"] if engagement else 0,
        "clicked": engagement["clicked"] if engagement else 0,
    }


@with_db_retry(max_retries=3, base_delay=0.1)
async def track_reminder_open(reminder_id: str) -> bool:
    """Stamp the first open only."""
    query = """
    UPDATE onboarding_reminders
    SET opened_at = COALESCE(opened_at, NOW())
    WHERE id = %s
    """
    return await execute_query(query, (reminder_id,)) > 0


@with_db_retry(max_retries=3, base_delay=0.1)
async def track_reminder_click(reminder_id: str) -> bool:
    """Stamp the first click; a click implies an open."""
    query = """
    UPDATE onboarding_reminders
    SET clicked_at = COALESCE(clicked_at, NOW()),
        opened_at = COALESCE(opened_at, NOW())
    WHERE id = %s
    """
    return await execute_query(query, (reminder_id,)) > 0


@with_db_retry(max_retries=3, base_delay=0.1)
async def delete_old_reminders(days_old: int = 90) -> int:
    """
    Delete settled reminders older than the retention window.

    Automated rows of an open session are its record of which kinds went out,
    so they are only purged once the session is completed, abandoned or
    expired. Manual rows never feed the cadence and age out on their own.
    """
    query = """
    DELETE FROM onboarding_reminders r
    USING client_onboarding_sessions s
    WHERE r.session_id = s.id
      AND r.status <> 'processing'
      AND r.created_at < NOW() - make_interval(days => %s)
      AND (
          r.is_manual = true
          OR s.status NOT IN ('pending', 'in_progress')
          OR (s.expires_at IS NOT NULL AND s.expires_at <= NOW())
      )
    """
    deleted = await execute_query(query, (days_old,))
    logger.info("Old reminders deleted", count=deleted, days_old=days_old)
    return deleted
