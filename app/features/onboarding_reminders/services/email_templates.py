"""
Onboarding reminder email templates.

Pure rendering: every builder returns a fresh EmailTemplate with both an
HTML and a plain-text body. Nothing here sends mail.
"""

import html
from datetime import datetime

from app.config import settings
from app.features.onboarding_reminders.domain.errors import InvalidReminderRequestError
from app.features.onboarding_reminders.domain.models import (
    EmailTemplate,
    OnboardingSessionSnapshot,
)
from app.features.onboarding_reminders.policy.timing import days_until_expiration

# Link lifetime shown when a session has no expiry stamped on it
DEFAULT_DAYS_REMAINING = 30

# Minutes a fresh questionnaire takes; each 5% of progress saves a minute
ESTIMATED_TOTAL_MINUTES = 20

THEME = {
    "brand_gradient": "linear-gradient(135deg, #667eea 0%, #764ba2 100%)",
    "progress_gradient": "linear-gradient(90deg, #667eea 0%, #764ba2 100%)",
    "urgent_gradient": "linear-gradient(135deg, #ef4444 0%, #dc2626 100%)",
    "text": "#333",
    "text_muted": "#6b7280",
    "text_faint": "#9ca3af",
    "border": "#e5e7eb",
    "panel": "#f3f4f6",
}

_FONT_STACK = (
    "-apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif"
)


def get_onboarding_url(access_token: str) -> str:
    """Public questionnaire link for a session."""
    return f"{settings.app_base_url()}/onboarding/{access_token}"


def _days_remaining(session: OnboardingSessionSnapshot, now: datetime | None) -> int:
    days = days_until_expiration(session.expires_at, now=now)
    return DEFAULT_DAYS_REMAINING if days is None else days


def estimate_minutes_remaining(completion_percentage: int) -> int:
    """Rough time left to finish, never below zero."""
    return max(0, ESTIMATED_TOTAL_MINUTES - completion_percentage // 5)


def _base_template(
    title: str,
    heading: str,
    content: str,
    cta_url: str,
    cta_label: str,
    footer: str,
    gradient: str = THEME["brand_gradient"],
) -> str:
    """Shared visual frame for every reminder email."""
    return f"""
<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
</head>
<body style="font-family: {_FONT_STACK}; line-height: 1.6; color: {THEME['text']}; max-width: 600px; margin: 0 auto; padding: 20px;">
  <div style="background: {gradient}; padding: 30px; text-align: center; border-radius: 8px 8px 0 0;">
    <h1 style="color: white; margin: 0; font-size: 28px;">{heading}</h1>
  </div>

  <div style="background: white; padding: 30px; border: 1px solid {THEME['border']}; border-top: none; border-radius: 0 0 8px 8px;">
    {content}

    <div style="text-align: center; margin: 30px 0;">
      <a href="{cta_url}" style="display: inline-block; background: {gradient}; color: white; padding: 14px 32px; text-decoration: none; border-radius: 6px; font-weight: 600; font-size: 16px;">{cta_label}</a>
    </div>
  </div>

  <div style="text-align: center; padding: 20px; color: {THEME['text_faint']}; font-size: 12px;">
    <p>{footer}</p>
  </div>
</body>
</html>
""".strip()


def _greeting(recipient_name: str) -> str:
    return f'<p style="font-size: 16px; margin-top: 0;">Hi {html.escape(recipient_name)},</p>'


def _text_body(*paragraphs: str) -> str:
    """Join non-empty paragraphs with blank lines."""
    return "\n\n".join(p for p in paragraphs if p).strip()


def build_gentle_reminder_email(
    session: OnboardingSessionSnapshot,
    recipient_name: str = "there",
    *,
    now: datetime | None = None,
) -> EmailTemplate:
    """First nudge, sent a couple of days after the invitation."""
    onboarding_url = get_onboarding_url(session.access_token)
    days_remaining = _days_remaining(session, now)
    project = html.escape(session.project_name)
    pct = session.completion_percentage
    progress_label = f"{pct}% Complete (Step {session.current_step} of {session.total_steps})"

    subject = f"Quick reminder: Your {session.project_name} onboarding awaits"

    progress_html = ""
    if pct > 0:
        progress_html = f"""
    <div style="background: {THEME['panel']}; padding: 15px; border-radius: 6px; margin: 20px 0;">
      <p style="margin: 0; font-size: 14px; color: {THEME['text_muted']};">Your Progress:</p>
      <div style="background: {THEME['border']}; border-radius: 10px; height: 20px; margin-top: 8px; overflow: hidden;">
        <div style="background: {THEME['progress_gradient']}; height: 100%; width: {min(pct, 100)}%;"></div>
      </div>
      <p style="margin: 8px 0 0 0; font-size: 14px; color: {THEME['text_muted']};">{progress_label}</p>
    </div>"""

    content = f"""{_greeting(recipient_name)}

    <p style="font-size: 16px;">We noticed you started the onboarding for <strong>{project}</strong> but haven't finished yet.</p>
    {progress_html}
    <p style="font-size: 16px;">It only takes a few more minutes to complete. Let's get your project started! 🚀</p>

    <p style="font-size: 14px; color: {THEME['text_muted']}; border-top: 1px solid {THEME['border']}; padding-top: 20px; margin-top: 30px;">
      <strong>Note:</strong> This link expires in {days_remaining} days. Complete your onboarding before it expires!
    </p>"""

    html_body = _base_template(
        title=html.escape(subject),
        heading="👋 Quick Reminder",
        content=content,
        cta_url=onboarding_url,
        cta_label="Continue Onboarding",
        footer="Need help? Reply to this email and we'll get back to you right away.",
    )

    text_body = _text_body(
        f"Hi {recipient_name},",
        f"We noticed you started the onboarding for {session.project_name} "
        "but haven't finished yet.",
        f"Your Progress: {progress_label}" if pct > 0 else "",
        "It only takes a few more minutes to complete. Let's get your project started!",
        f"Continue Onboarding: {onboarding_url}",
        f"Note: This link expires in {days_remaining} days.",
        "Need help? Reply to this email and we'll get back to you right away.",
    )

    return EmailTemplate(subject=subject, html_body=html_body, text_body=text_body)


_ENCOURAGEMENT_BENEFITS = (
    "Understand your exact requirements",
    "Start your project faster",
    "Deliver exactly what you need",
    "Avoid back-and-forth delays",
)


def build_encouragement_email(
    session: OnboardingSessionSnapshot,
    recipient_name: str = "there",
    *,
    now: datetime | None = None,
) -> EmailTemplate:
    onboarding_url = get_onboarding_url(session.access_token)
    days_remaining = _days_remaining(session, now)
    project = html.escape(session.project_name)

    subject = f"Need help with your {session.project_name} onboarding?"

    benefits_html = "\n".join(f"      <li>{item}</li>" for item in _ENCOURAGEMENT_BENEFITS)
    content = f"""{_greeting(recipient_name)}

    <p style="font-size: 16px;">We wanted to check in on your onboarding for <strong>{project}</strong>.</p>

    <p style="font-size: 16px;">Completing your onboarding helps us:</p>
    <ul style="font-size: 16px; padding-left: 20px;">
{benefits_html}
    </ul>

    <div style="background: #fef3c7; border-left: 4px solid #f59e0b; padding: 15px; margin: 20px 0;">
      <p style="margin: 0; font-size: 14px; color: #78350f;"><strong>Stuck on something?</strong> Reply to this email and we'll help you through it. We can even hop on a quick call if that's easier!</p>
    </div>

    <p style="font-size: 14px; color: {THEME['text_muted']}; border-top: 1px solid {THEME['border']}; padding-top: 20px; margin-top: 30px;">
      <strong>Expires in {days_remaining} days.</strong> Don't miss out on getting your project started!
    </p>"""

    html_body = _base_template(
        title=html.escape(subject),
        heading="💜 We're Here to Help",
        content=content,
        cta_url=onboarding_url,
        cta_label="Complete Onboarding Now",
        footer="Questions? Just hit reply – we're here to help! 💬",
    )

    text_body = _text_body(
        f"Hi {recipient_name},",
        f"We wanted to check in on your onboarding for {session.project_name}.",
        "Completing your onboarding helps us:\n"
        + "\n".join(f"• {item}" for item in _ENCOURAGEMENT_BENEFITS),
        "Stuck on something? Reply to this email and we'll help you through it. "
        "We can even hop on a quick call if that's easier!",
        f"Complete Onboarding Now: {onboarding_url}",
        f"Expires in {days_remaining} days. Don't miss out!",
        "Questions? Just hit reply – we're here to help!",
    )

    return EmailTemplate(subject=subject, html_body=html_body, text_body=text_body)


def build_final_reminder_email(
    session: OnboardingSessionSnapshot,
    recipient_name: str = "there",
    *,
    now: datetime | None = None,
) -> EmailTemplate:
    """Last automated reminder; stresses the expiry date."""
    onboarding_url = get_onboarding_url(session.access_token)
    days_remaining = _days_remaining(session, now)
    minutes_left = estimate_minutes_remaining(session.completion_percentage)
    project = html.escape(session.project_name)

    subject = f"⏰ Final reminder: Complete your {session.project_name} onboarding"

    content = f"""{_greeting(recipient_name)}

    <p style="font-size: 16px;">This is our final reminder about your onboarding for <strong>{project}</strong>.</p>

    <div style="background: #fee2e2; border-left: 4px solid #ef4444; padding: 15px; margin: 20px 0;">
      <p style="margin: 0; font-size: 16px; color: #7f1d1d;"><strong>⚠️ Your onboarding link expires in {days_remaining} days!</strong></p>
      <p style="margin: 10px 0 0 0; font-size: 14px; color: #991b1b;">After it expires, you'll need to request a new invitation to continue.</p>
    </div>

    <p style="font-size: 16px;">We're excited to start working on your project, but we need your input first!</p>

    <p style="font-size: 16px; font-weight: 600;">⏱️ Takes only {minutes_left} more minutes to complete.</p>

    <p style="font-size: 14px; color: {THEME['text_muted']}; text-align: center; margin-top: 30px;">
      <strong>Having trouble?</strong> Hit reply and we'll personally help you through it.
    </p>"""

    html_body = _base_template(
        title=html.escape(subject),
        heading="⏰ Final Reminder",
        content=content,
        cta_url=onboarding_url,
        cta_label="Complete Now - Before It Expires",
        footer="This is our last reminder. We hope to hear from you soon! 🙏",
        gradient=THEME["urgent_gradient"],
    )

    text_body = _text_body(
        f"Hi {recipient_name},",
        f"This is our final reminder about your onboarding for {session.project_name}.",
        f"⚠️ YOUR ONBOARDING LINK EXPIRES IN {days_remaining} DAYS!",
        "After it expires, you'll need to request a new invitation to continue.",
        "We're excited to start working on your project, but we need your input first!",
        f"⏱️ Takes only {minutes_left} more minutes to complete.",
        f"Complete Now: {onboarding_url}",
        "Having trouble? Hit reply and we'll personally help you through it.",
        "This is our last reminder. We hope to hear from you soon!",
    )

    return EmailTemplate(subject=subject, html_body=html_body, text_body=text_body)


def build_custom_reminder_email(
    session: OnboardingSessionSnapshot,
    recipient_name: str,
    custom_subject: str,
    custom_message: str,
) -> EmailTemplate:
    """Team-written message in the standard frame."""
    onboarding_url = get_onboarding_url(session.access_token)

    content = f"""{_greeting(recipient_name)}

    <div style="font-size: 16px; white-space: pre-wrap;">{html.escape(custom_message)}</div>"""

    html_body = _base_template(
        title=html.escape(custom_subject),
        heading="📨 Message from Your Team",
        content=content,
        cta_url=onboarding_url,
        cta_label="Continue to Onboarding",
        footer="Questions? Reply to this email anytime.",
    )

    text_body = _text_body(
        f"Hi {recipient_name},",
        custom_message,
        f"Continue to Onboarding: {onboarding_url}",
        "Questions? Reply to this email anytime.",
    )

    return EmailTemplate(subject=custom_subject, html_body=html_body, text_body=text_body)


def get_reminder_email_template(
    kind: str,
    session: OnboardingSessionSnapshot,
    recipient_name: str | None,
    custom_subject: str | None = None,
    custom_message: str | None = None,
    *,
    now: datetime | None = None,
) -> EmailTemplate:
    """
    Render the email for a reminder kind.

    Args:
        kind: Reminder kind; "initial" and unknown kinds use the gentle email
        session: Session display data
        recipient_name: Greeting name, "there" when empty
        custom_subject: Required for "custom"
        custom_message: Required for "custom"
        now: Evaluation instant for the days-remaining figure

    Raises:
        InvalidReminderRequestError: "custom" without both subject and message
    """
    name = recipient_name or "there"

    if kind == "custom":
        if not custom_subject or not custom_message:
            raise InvalidReminderRequestError("Custom reminder requires subject and message")
        return build_custom_reminder_email(session, name, custom_subject, custom_message)

    if kind == "encouragement":
        return build_encouragement_email(session, name, now=now)

    if kind == "final":
        return build_final_reminder_email(session, name, now=now)

    return build_gentle_reminder_email(session, name, now=now)
