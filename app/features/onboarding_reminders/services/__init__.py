"""
Service layer for onboarding reminders.
"""

from .delivery import EmailDeliveryPort, ResendEmailDelivery, get_email_delivery
from .email_templates import get_onboarding_url, get_reminder_email_template

__all__ = [
    "EmailDeliveryPort",
    "ResendEmailDelivery",
    "get_email_delivery",
    "get_onboarding_url",
    "get_reminder_email_template",
]
