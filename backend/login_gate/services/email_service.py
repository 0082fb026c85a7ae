"""Email sending service using SMTP (aiosmtplib).

Emails are skipped when SMTP_HOST is not configured. Reset links are never
logged, so without SMTP the password reset flow cannot deliver a link.
"""

import html
import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

import aiosmtplib

from login_gate.config import settings as _settings
from login_gate.utils.logging_utils import redact_email

logger = logging.getLogger(__name__)


class EmailService:
    """Thin wrapper around aiosmtplib for sending transactional emails."""

    def __init__(self, smtp_host: Optional[str], smtp_port: int, smtp_username: Optional[str],
                 smtp_password: Optional[str], from_email: str, from_name: str,
                 use_tls: bool, app_base_url: str, sitename: str):
        self._host = smtp_host
        self._port = smtp_port
        self._username = smtp_username or ""
        self._password = smtp_password or ""
        self._from_email = from_email
        self._from_name = from_name
        self._use_tls = use_tls
        self._base_url = app_base_url.rstrip("/")
        self._sitename = sitename

    @property
    def is_configured(self) -> bool:
        """Return True when an SMTP host is present."""
        return bool(self._host)

    async def send_email(self, to_email: str, subject: str, html_body: str,
                         text_body: str) -> bool:
        """
        Send an email.  Returns True on success, False otherwise (never raises).
        When SMTP is not configured the call is a no-op that returns False.
        """
        if not self.is_configured:
            logger.info("Email not configured, skipping send to %s: %s",
                        redact_email(to_email), subject)
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self._from_name} <{self._from_email}>"
        msg["To"] = to_email
        msg.attach(MIMEText(text_body, "plain"))
        msg.attach(MIMEText(html_body, "html"))

        try:
            await aiosmtplib.send(
                msg,
                hostname=self._host,
                port=self._port,
                username=self._username,
                password=self._password,
                use_tls=False,
                start_tls=self._use_tls,
            )
            logger.info("Email sent to %s: %s", redact_email(to_email), subject)
            return True
        except aiosmtplib.SMTPException as exc:
            logger.error("Failed to send email to %s: %s", redact_email(to_email), exc)
            return False

    async def send_password_reset_email(self, to_email: str, reset_path: str,
                                        display_name: str, expires_minutes: int) -> bool:
        """Send a backend password-reset link. ``reset_path`` is site-relative."""
        reset_url = f"{self._base_url}{reset_path}"
        greeting = html.escape(display_name or to_email)
        sitename = html.escape(self._sitename)

        subject = f"Reset your password for {self._sitename}"
        html_body = f"""
<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
  <h2>Reset your backend password</h2>
  <p>Hi {greeting},</p>
  <p>Someone requested a new password for your backend account on {sitename}.</p>
  <p style="margin: 30px 0;"><a href="{html.escape(reset_url)}">Choose a new password</a></p>
  <p style="font-size: 14px;">
    This link expires in {expires_minutes} minutes. If you did not request a password reset,
    you can ignore this email and your password will not change.
  </p>
</body>
</html>"""
        text_body = (
            f"Hi {display_name or to_email},\n\n"
            f"Choose a new backend password for {self._sitename} by visiting:\n{reset_url}\n\n"
            f"This link expires in {expires_minutes} minutes.\n\n"
            f"If you didn't request this, you can safely ignore it."
        )
        return await self.send_email(to_email, subject, html_body, text_body)


def build_email_service() -> EmailService:
    """Construct the service from loaded settings."""
    return EmailService(
        smtp_host=_settings.SMTP_HOST,
        smtp_port=_settings.SMTP_PORT,
        smtp_username=_settings.SMTP_USERNAME,
        smtp_password=_settings.SMTP_PASSWORD,
        from_email=_settings.SMTP_FROM_EMAIL,
        from_name=_settings.SMTP_FROM_NAME,
        use_tls=_settings.SMTP_USE_TLS,
        app_base_url=_settings.APP_BASE_URL,
        sitename=_settings.SITENAME,
    )
