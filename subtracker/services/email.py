import logging
from dataclasses import dataclass
from datetime import date
from html import escape
from typing import Optional

import resend

from subtracker.config import settings

logger = logging.getLogger(__name__)

NOT_CONFIGURED = "No email service configured"


@dataclass
class EmailResult:
    sent: bool
    email_id: Optional[str] = None
    error: Optional[str] = None  # Set when the provider rejected or failed the send
    reason: Optional[str] = None  # Set when nothing was attempted

    @property
    def failed(self) -> bool:
        return self.error is not None


def renewal_phrase(days_until_renewal: int) -> str:
    if days_until_renewal == 0:
        return "renews today"
    if days_until_renewal == 1:
        return "renews tomorrow"
    return f"renews in {days_until_renewal} days"


def reminder_subject(subscription_name: str, days_until_renewal: int) -> str:
    subject = f"{subscription_name} {renewal_phrase(days_until_renewal)}"
    return subject + "!" if days_until_renewal == 0 else subject


def format_renewal_date(renewal_date: date) -> str:
    return f"{renewal_date:%B} {renewal_date.day}, {renewal_date.year}"


def _urgency_line(days_until_renewal: int) -> str:
    if days_until_renewal == 0:
        return "Your subscription renews today!"
    if days_until_renewal == 1:
        return "Your subscription renews tomorrow!"
    return f"Your subscription will renew in {days_until_renewal} days."


class EmailService:
    """Renewal reminder emails sent through Resend."""

    def __init__(self, api_key: Optional[str] = None, from_address: Optional[str] = None):
        self._api_key = api_key if api_key is not None else settings.resend_api_key
        self._from_address = from_address or settings.email_from_address
        if self._api_key:
            resend.api_key = self._api_key
            logger.info("Resend email service initialized")
        else:
            logger.warning("RESEND_API_KEY not configured, reminder emails will not be sent")

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def render_renewal_reminder(
        self,
        user_name: Optional[str],
        subscription_name: str,
        amount: float,
        billing: str,
        days_until_renewal: int,
        renewal_date: date,
        description: Optional[str] = None,
    ) -> tuple[str, str, str]:
        """Return (subject, text_body, html_body)."""
        subject = reminder_subject(subscription_name, days_until_renewal)
        greeting_name = user_name or "there"
        amount_str = f"{settings.currency_symbol}{amount:.2f}"
        date_str = format_renewal_date(renewal_date)
        urgency = _urgency_line(days_until_renewal)

        text_lines = [
            "Subscription Reminder",
            "",
            f"Hi {greeting_name},",
            "",
            "This is a friendly reminder about your upcoming subscription renewal:",
            "",
            subscription_name,
            f"Amount: {amount_str}",
            f"Billing Cycle: {billing}",
            f"Renewal Date: {date_str}",
        ]
        if description:
            text_lines.append(f"Description: {description}")
        text_lines += [
            "",
            f"{urgency} Make sure you have sufficient funds available.",
            "",
            "If you want to cancel or modify this subscription, please do so before the renewal date.",
            "",
            "---",
            "You're receiving this email because you subscribed to reminders in Subscription Tracker.",
        ]
        text_body = "\n".join(text_lines)

        description_html = (
            f'<p style="margin: 5px 0;"><strong>Description:</strong> {escape(description)}</p>'
            if description
            else ""
        )
        html_body = f"""
        <html>
        <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2 style="color: #333;">Subscription Reminder</h2>
            <p>Hi {escape(greeting_name)},</p>
            <p>This is a friendly reminder about your upcoming subscription renewal:</p>
            <div style="background-color: #f5f5f5; padding: 20px; border-radius: 8px; margin: 20px 0; border-left: 4px solid #667eea;">
                <h3 style="margin: 0 0 10px 0; color: #667eea;">{escape(subscription_name)}</h3>
                <p style="margin: 5px 0;"><strong>Amount:</strong> {amount_str}</p>
                <p style="margin: 5px 0;"><strong>Billing Cycle:</strong> {billing}</p>
                <p style="margin: 5px 0;"><strong>Renewal Date:</strong> {date_str}</p>
                {description_html}
            </div>
            <p><strong>{urgency}</strong> Make sure you have sufficient funds available.</p>
            <p>If you want to cancel or modify this subscription, please do so before the renewal date.</p>
            <p style="color: #666; font-size: 12px; margin-top: 30px;">
                You're receiving this email because you subscribed to reminders in Subscription Tracker.
            </p>
        </body>
        </html>
        """
        return subject, text_body, html_body

    def send(self, to_email: str, subject: str, text_body: str, html_body: str) -> EmailResult:
        if not self.configured:
            logger.info(f"Email not configured - would have sent to {to_email}: {subject}")
            return EmailResult(sent=False, reason=NOT_CONFIGURED)

        try:
            params = {
                "from": self._from_address,
                "to": [to_email],
                "subject": subject,
                "text": text_body,
                "html": html_body,
            }
            response = resend.Emails.send(params)
            email_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
            logger.info(f"Email sent to {to_email}, id: {email_id}")
            return EmailResult(sent=True, email_id=email_id)
        except Exception as e:
            error_msg = str(e)
            logger.error(f"Failed to send email to {to_email}: {error_msg}")
            return EmailResult(sent=False, error=error_msg)

    def send_renewal_reminder(
        self,
        to_email: str,
        user_name: Optional[str],
        subscription_name: str,
        amount: float,
        billing: str,
        days_until_renewal: int,
        renewal_date: date,
        description: Optional[str] = None,
    ) -> EmailResult:
        subject, text_body, html_body = self.render_renewal_reminder(
            user_name=user_name,
            subscription_name=subscription_name,
            amount=amount,
            billing=billing,
            days_until_renewal=days_until_renewal,
            renewal_date=renewal_date,
            description=description,
        )
        return self.send(to_email, subject, text_body, html_body)


# Singleton instance
email_service = EmailService()
