"""Email service for reservation notifications.

Sends the booking confirmation to the customer (copying the caregiver).
Uses SMTP configuration from settings. Sending is best effort: every failure
is logged and reported as ``False``, never raised.
"""

import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape

from carebook.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class ConfirmationEmail:
    """Data rendered into a reservation confirmation."""

    to_email: str
    customer_name: str
    caregiver_name: str
    caregiver_email: str
    day: str
    ranges: list[str]
    price_summary: str
    cancel_url: str | None = None


class EmailService:
    """Service for sending reservation emails."""

    def __init__(self, settings: Settings) -> None:
        self.smtp_host = settings.smtp_host
        self.smtp_port = settings.smtp_port
        self.smtp_user = settings.smtp_user
        self.smtp_pass = settings.smtp_pass
        self.from_email = settings.smtp_from or settings.smtp_user
        self.from_name = settings.smtp_from_name
        self.enabled = settings.notifications_enabled

    @property
    def is_configured(self) -> bool:
        """Check if email is configured."""
        return bool(self.enabled and self.smtp_host and self.smtp_user and self.smtp_pass)

    def _send_email(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str | None = None,
        cc: list[str] | None = None,
    ) -> bool:
        """Send an email via SMTP.

        Args:
            to_email: Recipient email address
            subject: Email subject
            html_body: HTML email body
            text_body: Plain text body (optional fallback)
            cc: Additional recipients

        Returns:
            True if email was sent successfully
        """
        if not self.is_configured:
            logger.warning("Email not configured, skipping send")
            return False

        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = f"{self.from_name} <{self.from_email}>"
            msg["To"] = to_email
            if cc:
                msg["Cc"] = ", ".join(cc)

            if text_body:
                msg.attach(MIMEText(text_body, "plain"))
            msg.attach(MIMEText(html_body, "html"))

            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=15) as server:
                server.starttls()
                server.login(self.smtp_user, self.smtp_pass)
                server.send_message(msg)

            logger.info(f"Email sent to {to_email}: {subject}")
            return True

        except Exception as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            return False

    def send_reservation_confirmation(self, email: ConfirmationEmail) -> bool:
        """Send the confirmation for a new reservation.

        Returns:
            True if email was sent
        """
        slots = ", ".join(email.ranges)
        subject = f"Booking confirmed: {email.day} with {email.caregiver_name}"

        cancel_html = ""
        cancel_text = ""
        if email.cancel_url:
            cancel_html = (
                f'<p style="color: #666; font-size: 14px;">Need to cancel? '
                f'<a href="{escape(email.cancel_url)}">Cancel this booking</a></p>'
            )
            cancel_text = f"\nTo cancel this booking open:\n{email.cancel_url}\n"

        html_body = f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="utf-8">
        </head>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2>Your booking is confirmed</h2>
            <p>Hello {escape(email.customer_name)},</p>
            <p>{escape(email.caregiver_name)} will visit you on <strong>{escape(email.day)}</strong>
            during: <strong>{escape(slots)}</strong>.</p>
            <p>Price: {escape(email.price_summary)}</p>
            {cancel_html}
        </body>
        </html>
        """

        text_body = f"""
Your booking is confirmed

Hello {email.customer_name},

{email.caregiver_name} will visit you on {email.day} during: {slots}.
Price: {email.price_summary}
{cancel_text}"""

        cc = [email.caregiver_email] if email.caregiver_email else None
        return self._send_email(email.to_email, subject, html_body, text_body, cc=cc)
