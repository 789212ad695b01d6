"""Tests for the email service."""

from datetime import date
from unittest.mock import patch

from subtracker.services.email import (
    NOT_CONFIGURED,
    EmailService,
    format_renewal_date,
    reminder_subject,
)


class TestSubject:
    """Tests for subject and date formatting."""

    def test_subject_today(self):
        assert reminder_subject("Netflix", 0) == "Netflix renews today!"

    def test_subject_tomorrow(self):
        assert reminder_subject("Netflix", 1) == "Netflix renews tomorrow"

    def test_subject_days(self):
        assert reminder_subject("Netflix", 3) == "Netflix renews in 3 days"

    def test_format_renewal_date(self):
        assert format_renewal_date(date(2024, 3, 10)) == "March 10, 2024"


class TestRender:
    """Tests for the reminder body."""

    def test_text_body_contains_details(self):
        service = EmailService(api_key="")
        subject, text_body, html_body = service.render_renewal_reminder(
            user_name="Ana",
            subscription_name="Netflix",
            amount=15.99,
            billing="Monthly",
            days_until_renewal=3,
            renewal_date=date(2024, 3, 10),
            description="Family plan",
        )

        assert subject == "Netflix renews in 3 days"
        assert "Hi Ana," in text_body
        assert "Amount: €15.99" in text_body
        assert "Billing Cycle: Monthly" in text_body
        assert "Renewal Date: March 10, 2024" in text_body
        assert "Description: Family plan" in text_body
        assert "Your subscription will renew in 3 days." in text_body
        assert "Netflix" in html_body

    def test_defaults_greeting_and_omits_description(self):
        service = EmailService(api_key="")
        _, text_body, html_body = service.render_renewal_reminder(
            user_name=None,
            subscription_name="Netflix",
            amount=15.99,
            billing="Monthly",
            days_until_renewal=0,
            renewal_date=date(2024, 3, 10),
        )

        assert "Hi there," in text_body
        assert "Description" not in text_body
        assert "Your subscription renews today!" in text_body

    def test_html_is_escaped(self):
        service = EmailService(api_key="")
        _, _, html_body = service.render_renewal_reminder(
            user_name="<b>Ana</b>",
            subscription_name="Tom & Jerry",
            amount=1.0,
            billing="Yearly",
            days_until_renewal=1,
            renewal_date=date(2024, 3, 10),
        )

        assert "Tom &amp; Jerry" in html_body
        assert "<b>Ana</b>" not in html_body


class TestSend:
    """Tests for sending through Resend."""

    def test_not_configured_is_not_an_error(self):
        service = EmailService(api_key="")

        with patch("subtracker.services.email.resend.Emails.send") as send:
            result = service.send_renewal_reminder(
                to_email="test@example.com",
                user_name=None,
                subscription_name="Netflix",
                amount=15.99,
                billing="Monthly",
                days_until_renewal=3,
                renewal_date=date(2024, 3, 10),
            )

        send.assert_not_called()
        assert result.sent is False
        assert result.reason == NOT_CONFIGURED
        assert result.failed is False

    def test_successful_send(self):
        service = EmailService(api_key="re_test", from_address="Tracker <noreply@example.com>")

        with patch("subtracker.services.email.resend.Emails.send", return_value={"id": "email-123"}) as send:
            result = service.send("test@example.com", "Subject", "text", "<p>html</p>")

        assert result.sent is True
        assert result.email_id == "email-123"
        params = send.call_args.args[0]
        assert params["from"] == "Tracker <noreply@example.com>"
        assert params["to"] == ["test@example.com"]
        assert params["subject"] == "Subject"

    def test_provider_failure(self):
        service = EmailService(api_key="re_test")

        with patch(
            "subtracker.services.email.resend.Emails.send",
            side_effect=Exception("Invalid recipient"),
        ):
            result = service.send("test@example.com", "Subject", "text", "<p>html</p>")

        assert result.sent is False
        assert result.failed is True
        assert result.error == "Invalid recipient"
