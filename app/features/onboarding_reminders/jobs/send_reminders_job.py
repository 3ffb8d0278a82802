"""
Reminder dispatch job.

Each tick loads candidate sessions, asks the policy which reminder (if any)
is due, claims that kind in the ledger and delivers it. The ledger claim makes
a tick safe to re-run: a kind that is in flight or already sent is never
claimed twice, and failed kinds are re-armed on the next tick.

Once an email has gone out its row is never marked failed. If the sent-mark
cannot be written the confirmation is kept and retried before the next tick
claims anything.
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from app.config import settings
from app.db.helpers import DatabaseError
from app.db.pool import db_pool
from app.features.onboarding_reminders.domain.errors import ReminderPolicyError
from app.features.onboarding_reminders.domain.models import (
    EmailMessage,
    OnboardingSessionSnapshot,
)
from app.features.onboarding_reminders.policy.scheduler import decide_reminder
from app.features.onboarding_reminders.policy.suppression import is_permanent_suppression
from app.features.onboarding_reminders.policy.timing import utcnow
from app.features.onboarding_reminders.repository import (
    reminder_repository,
    session_repository,
)
from app.features.onboarding_reminders.services.delivery import (
    EmailDeliveryPort,
    get_email_delivery,
)
from app.features.onboarding_reminders.services.email_templates import (
    get_reminder_email_template,
)
from app.features.onboarding_reminders.services.reminder_service import session_custom_schedule
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

ERROR_BACKOFF_SECONDS = 60


class SendRemindersJobError(Exception):
    """Raised when a dispatch tick cannot run at all."""

    def __init__(self, message: str, operation: str | None = None, recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


@dataclass(frozen=True, slots=True)
class PendingConfirmation:
    """A delivered reminder whose sent-mark has not been written yet."""

    session_id: str
    subject: str
    html_body: str
    metadata: dict[str, Any]


class ReminderDispatchMetrics:
    """Per-tick counters."""

    def __init__(self):
        self.reset()

    def reset(self):
        self.start_time = time.monotonic()
        self.processed = 0
        self.sent = 0
        self.skipped = 0
        self.idle = 0
        self.failed = 0
        self.errors: list[dict] = []

    def record_failure(self, session_id: str, kind: str | None, error: str):
        self.failed += 1
        self.errors.append({"session_id": session_id, "kind": kind, "error": error})
        logger.warning(
            "Reminder dispatch failed",
            session_id=session_id,
            kind=kind,
            error=error,
            job_run="send_reminders",
        )

    def to_dict(self, timestamp: datetime) -> dict:
        return {
            "success": True,
            "processed": self.processed,
            "sent": self.sent,
            "skipped": self.skipped,
            "idle": self.idle,
            "failed": self.failed,
            "duration_ms": round((time.monotonic() - self.start_time) * 1000, 2),
            "timestamp": timestamp.isoformat(),
        }


class SendRemindersJob:
    """Evaluates candidate sessions and delivers whichever reminder is due."""

    def __init__(
        self,
        delivery: EmailDeliveryPort | None = None,
        batch_limit: int | None = None,
    ):
        self._delivery = delivery
        self.batch_limit = batch_limit or settings.REMINDER_BATCH_LIMIT
        self.is_running = False
        self.last_run_time: datetime | None = None
        self.metrics = ReminderDispatchMetrics()
        self.pending_confirmations: dict[str, PendingConfirmation] = {}

    @property
    def delivery(self) -> EmailDeliveryPort:
        return self._delivery or get_email_delivery()

    async def run_once(self, now: datetime | None = None) -> dict:
        """
        Run a single dispatch tick.

        Args:
            now: Evaluation instant shared by every session in the tick

        Returns:
            dict: success, processed, sent, skipped, idle, failed,
            duration_ms and timestamp

        Raises:
            SendRemindersJobError: Candidates could not be loaded
        """
        if self.is_running:
            logger.warning("Send reminders job already running, skipping this iteration")
            return {"success": True, "skipped": True, "reason": "already_running"}

        current = now or utcnow()

        try:
            self.is_running = True
            self.metrics.reset()
            await self._confirm_pending_deliveries()

            try:
                sessions = await session_repository.list_reminder_candidates(self.batch_limit)
            except DatabaseError as e:
                logger.error("Failed to load reminder candidates", error=str(e))
                raise SendRemindersJobError(
                    f"Failed to load reminder candidates: {e}", operation="list_candidates"
                ) from e

            logger.info(
                "Starting send reminders job", candidates=len(sessions), limit=self.batch_limit
            )

            for session in sessions:
                await self._process_session(session, current)

            try:
                await session_repository.mark_sessions_evaluated([s.id for s in sessions])
            except DatabaseError as e:
                logger.error("Failed to stamp evaluated sessions", error=str(e))

            self.last_run_time = current
            summary = self.metrics.to_dict(current)
            logger.info("Send reminders job completed", **summary)
            return summary

        finally:
            self.is_running = False

    async def _process_session(self, session: OnboardingSessionSnapshot, now: datetime) -> None:
        self.metrics.processed += 1
        reminder_id: str | None = None
        kind: str | None = None

        try:
            sent_kinds = await reminder_repository.get_sent_reminder_kinds(session.id)

            try:
                decision = decide_reminder(
                    session,
                    session.reminder_schedule,
                    sent_kinds,
                    custom_schedule=session_custom_schedule(session),
                    now=now,
                )
            except ReminderPolicyError as e:
                self.metrics.record_failure(session.id, None, str(e))
                return

            if decision.reminder is None:
                self.metrics.idle += 1
                return

            kind = decision.reminder.kind

            if decision.suppression_reason is not None:
                self.metrics.skipped += 1
                logger.debug(
                    "Reminder suppressed",
                    session_id=session.id,
                    kind=kind,
                    reason=decision.suppression_reason,
                    permanent=is_permanent_suppression(decision.suppression_reason),
                )
                return

            reminder_id = await reminder_repository.claim_reminder(
                session.id,
                kind,
                decision.reminder.scheduled_at,
                lease_minutes=settings.REMINDER_CLAIM_LEASE_MINUTES,
            )
            if reminder_id is None:
                # Another tick holds this kind
                self.metrics.skipped += 1
                return

            template = get_reminder_email_template(kind, session, session.client_name, now=now)
            result = await self.delivery.deliver(
                EmailMessage(
                    to=session.client_email or "",
                    subject=template.subject,
                    html=template.html_body,
                    text=template.text_body,
                )
            )

            if not result.success:
                await reminder_repository.mark_reminder_failed(reminder_id, result.message)
                self.metrics.record_failure(session.id, kind, result.message)
                return

        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            if reminder_id is not None:
                try:
                    await reminder_repository.mark_reminder_failed(reminder_id, error)
                except DatabaseError as mark_error:
                    logger.error(
                        "Failed to mark reminder failed",
                        reminder_id=reminder_id,
                        error=str(mark_error),
                    )
            self.metrics.record_failure(session.id, kind, error)
            return

        await self._record_delivery(
            reminder_id,
            kind,
            PendingConfirmation(
                session_id=session.id,
                subject=template.subject,
                html_body=template.html_body,
                metadata={"provider_id": result.provider_id, "profile": session.reminder_schedule},
            ),
        )

    async def _record_delivery(
        self, reminder_id: str, kind: str, confirmation: PendingConfirmation
    ) -> None:
        """Write the sent-mark for a delivered email. Never marks the row failed."""
        try:
            confirmed = await self._write_confirmation(reminder_id, confirmation)
        except Exception as e:
            self.pending_confirmations[reminder_id] = confirmation
            self.metrics.sent += 1
            logger.error(
                "Reminder delivered but not recorded, will retry",
                session_id=confirmation.session_id,
                kind=kind,
                reminder_id=reminder_id,
                error=str(e),
            )
            return

        if not confirmed:
            self.metrics.skipped += 1
            logger.warning(
                "Reminder delivered but its ledger row was already settled",
                session_id=confirmation.session_id,
                kind=kind,
                reminder_id=reminder_id,
            )
            return

        self.metrics.sent += 1
        logger.info(
            "Reminder sent",
            session_id=confirmation.session_id,
            kind=kind,
            reminder_id=reminder_id,
            job_run="send_reminders",
        )

    async def _write_confirmation(
        self, reminder_id: str, confirmation: PendingConfirmation
    ) -> bool:
        confirmed = await reminder_repository.mark_reminder_sent(
            reminder_id,
            confirmation.subject,
            confirmation.html_body,
            metadata=confirmation.metadata,
        )
        if confirmed:
            try:
                await session_repository.record_reminder_sent(confirmation.session_id)
            except DatabaseError as e:
                # Ledger row is settled; only the session counter is behind
                logger.error(
                    "Failed to bump session reminder count",
                    session_id=confirmation.session_id,
                    error=str(e),
                )
        return confirmed

    async def _confirm_pending_deliveries(self) -> None:
        for reminder_id, confirmation in list(self.pending_confirmations.items()):
            try:
                confirmed = await self._write_confirmation(reminder_id, confirmation)
            except DatabaseError as e:
                logger.error(
                    "Still unable to record delivered reminder",
                    reminder_id=reminder_id,
                    error=str(e),
                )
                continue

            del self.pending_confirmations[reminder_id]
            logger.info(
                "Recorded previously delivered reminder",
                reminder_id=reminder_id,
                confirmed=confirmed,
            )

    def get_job_status(self) -> dict:
        return {
            "job_name": "send_reminders",
            "is_running": self.is_running,
            "last_run_time": self.last_run_time.isoformat() if self.last_run_time else None,
            "interval_minutes": settings.REMINDER_JOB_INTERVAL_MINUTES,
            "batch_limit": self.batch_limit,
        }


send_reminders_job = SendRemindersJob()


async def run_send_reminders_job(now: datetime | None = None) -> dict:
    """Run a single dispatch tick on the shared job instance."""
    return await send_reminders_job.run_once(now)


async def _ensure_db_pool() -> None:
    if not db_pool.initialized:
        await db_pool.initialize()


async def start_send_reminders_scheduler() -> None:
    """Worker entry point: dispatch reminders on a fixed interval."""
    await _ensure_db_pool()
    interval = settings.REMINDER_JOB_INTERVAL_MINUTES
    logger.info("Starting send reminders scheduler", interval_minutes=interval)

    while True:
        try:
            await run_send_reminders_job()
            await asyncio.sleep(interval * 60)
        except Exception as e:
            logger.error(
                "Error in send reminders scheduler", error=str(e), error_type=type(e).__name__
            )
            await asyncio.sleep(ERROR_BACKOFF_SECONDS)


async def run_reminder_cleanup() -> None:
    """Worker entry point: purge sent reminders past the retention window."""
    await _ensure_db_pool()
    deleted = await reminder_repository.delete_old_reminders(settings.REMINDER_RETENTION_DAYS)
    logger.info(
        "Reminder cleanup completed",
        deleted=deleted,
        retention_days=settings.REMINDER_RETENTION_DAYS,
    )
