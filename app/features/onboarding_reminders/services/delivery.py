"""
Outbound email delivery for reminders.

The dispatch job and manual sends only see EmailDeliveryPort; the Resend
implementation is the production adapter. Provider failures come back as a
DeliveryResult with success=False rather than raising.
"""

import asyncio
from typing import Protocol

import resend

from app.config import settings
from app.features.onboarding_reminders.domain.models import DeliveryResult, EmailMessage
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class EmailDeliveryPort(Protocol):
    async def deliver(self, message: EmailMessage) -> DeliveryResult: ...


class ResendEmailDelivery:
    """Send reminder emails through the Resend API."""

    def __init__(
        self,
        api_key: str | None = None,
        from_email: str | None = None,
        from_name: str | None = None,
        reply_to: str | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.RESEND_API_KEY
        self.from_email = from_email if from_email is not None else settings.RESEND_FROM_EMAIL
        self.from_name = from_name or settings.EMAIL_FROM_NAME
        self.reply_to = reply_to if reply_to is not None else settings.RESEND_REPLY_TO

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.from_email)

    def _build_payload(self, message: EmailMessage) -> dict:
        payload = {
            "from": f"{self.from_name} <{self.from_email}>",
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
            "reply_to": message.reply_to or self.reply_to or self.from_email,
        }
        if message.text:
            payload["text"] = message.text
        return payload

    def _send_sync(self, payload: dict) -> dict:
        resend.api_key = self.api_key
        return resend.Emails.send(payload)

    async def deliver(self, message: EmailMessage) -> DeliveryResult:
        if not self.configured:
            logger.error("Email service not configured", missing="RESEND_API_KEY/RESEND_FROM_EMAIL")
            return DeliveryResult(success=False, message="Email service not configured")

        try:
            # resend's client is synchronous
            response = await asyncio.to_thread(self._send_sync, self._build_payload(message))
        except Exception as e:
            logger.error(
                "Email send error",
                to=message.to,
                error=str(e),
                error_type=type(e).__name__,
            )
            return DeliveryResult(success=False, message=str(e))

        provider_id = response.get("id") if isinstance(response, dict) else None
        logger.info("Email sent successfully", to=message.to, provider_id=provider_id)
        return DeliveryResult(
            success=True, message="Email sent successfully", provider_id=provider_id
        )


_default_delivery: EmailDeliveryPort | None = None


def get_email_delivery() -> EmailDeliveryPort:
    """Process-wide delivery adapter."""
    global _default_delivery
    if _default_delivery is None:
        _default_delivery = ResendEmailDelivery()
    return _default_delivery
