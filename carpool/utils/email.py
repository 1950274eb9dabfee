"""
Email Utility

SMTP mail sender used for verification codes, password reset codes and
contact-form relays.

smtplib is blocking, so messages are sent in the default executor to
keep the event loop free.
"""

import asyncio
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from html import escape
from typing import Optional, List
import logging

from carpool.core.config import Settings

logger = logging.getLogger(__name__)


class EmailService:
    """
    Notification gateway built once at startup from settings.

    Every send returns True on success and False on failure; callers
    decide whether a failed delivery is fatal for their operation.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def sender(self) -> Optional[str]:
        return self.settings.MAIL_FROM or self.settings.SMTP_EMAIL

    async def send_email(
        self,
        recipients: List[str],
        subject: str,
        content: str,
        content_type: str = "html",
        reply_to: Optional[str] = None,
    ) -> bool:
        """
        Send an email using the configured SMTP relay.

        Args:
            recipients: List of email addresses
            subject: Email subject
            content: Email body
            content_type: "plain" or "html"
            reply_to: Optional Reply-To address

        Returns:
            True if successful, False otherwise
        """
        if not self.settings.SMTP_CONFIGURED:
            if self.settings.DEBUG:
                # Local development: no relay, pretend it went out
                logger.warning(f"SMTP not configured; email to {recipients} ({subject!r}) not sent")
                return True
            logger.error("SMTP settings not configured. Email not sent.")
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = ", ".join(recipients)
        if reply_to:
            msg["Reply-To"] = reply_to
        msg.attach(MIMEText(content, content_type))

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._deliver, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {recipients}: {e}")
            return False

        logger.info(f"Email sent to {recipients}")
        return True

    def _deliver(self, msg: MIMEMultipart) -> None:
        port = int(self.settings.SMTP_PORT) if self.settings.SMTP_PORT else 587

        with smtplib.SMTP(
            self.settings.SMTP_SERVER,
            port,
            timeout=self.settings.SMTP_TIMEOUT
        ) as server:
            if self.settings.SMTP_USE_TLS:
                server.starttls()
            if self.settings.SMTP_PASSWORD:
                server.login(self.settings.SMTP_EMAIL, self.settings.SMTP_PASSWORD)
            server.send_message(msg)

    # ============================================================
    # Message helpers
    # ============================================================

    async def send_otp_email(self, email: str, code: str) -> bool:
        """Send the sign-up verification code."""
        subject = f"Verify Your Email - {self.settings.PROJECT_NAME}"
        body = _code_template(
            project=self.settings.PROJECT_NAME,
            heading=f"Welcome to {self.settings.PROJECT_NAME}!",
            intro="Thank you for signing up. To complete your registration, please use the following code:",
            code=code,
            expires_in_minutes=self.settings.OTP_EXPIRE_MINUTES,
            footer="If you didn't request this verification, please ignore this email.",
        )
        return await self.send_email([email], subject, body)

    async def send_password_reset_email(self, email: str, code: str) -> bool:
        """Send a password reset code."""
        subject = f"Reset Your Password - {self.settings.PROJECT_NAME}"
        body = _code_template(
            project=self.settings.PROJECT_NAME,
            heading="Password Reset Request",
            intro=(
                f"We received a request to reset your {self.settings.PROJECT_NAME} "
                "account password. Use the code below to proceed:"
            ),
            code=code,
            expires_in_minutes=self.settings.OTP_EXPIRE_MINUTES,
            footer=(
                "If you did not request a password reset, you can safely ignore "
                "this email. Your password will remain unchanged."
            ),
        )
        return await self.send_email([email], subject, body)

    async def send_contact_email(
        self,
        name: str,
        email: str,
        subject: str,
        message: str,
        phone: Optional[str] = None,
    ) -> bool:
        """Relay a contact-form submission to the support inbox."""
        recipient = self.settings.CONTACT_RECIPIENT or self.sender
        if not recipient:
            logger.error("No contact recipient configured. Contact message dropped.")
            return False

        body = f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
          <h2 style="color: #0066cc;">New Contact Form Submission</h2>
          <p><strong>Name:</strong> {escape(name)}</p>
          <p><strong>Email:</strong> {escape(email)}</p>
          <p><strong>Phone:</strong> {escape(phone or "N/A")}</p>
          <p><strong>Subject:</strong> {escape(subject)}</p>
          <p><strong>Message:</strong></p>
          <div style="background-color: #f5f5f5; padding: 15px; border-radius: 5px;">{escape(message)}</div>
          <hr style="border: 1px solid #eee; margin: 20px 0;">
          <p style="color: #666; font-size: 12px;">Sent from the {escape(self.settings.PROJECT_NAME)} contact form.</p>
        </div>
        """
        return await self.send_email(
            [recipient],
            f"Contact Form Submission: {subject}",
            body,
            reply_to=email,
        )


def _code_template(
    project: str,
    heading: str,
    intro: str,
    code: str,
    expires_in_minutes: int,
    footer: str,
) -> str:
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2 style="color: #0066cc;">{heading}</h2>
      <p>{intro}</p>
      <div style="background-color: #f5f5f5; padding: 15px; border-radius: 5px; text-align: center; margin: 20px 0;">
        <h1 style="color: #0066cc; margin: 0; font-size: 32px; letter-spacing: 8px;">{code}</h1>
      </div>
      <p>This code will expire in {expires_in_minutes} minutes.</p>
      <p>{footer}</p>
      <hr style="border: 1px solid #eee; margin: 20px 0;">
      <p style="color: #666; font-size: 12px;">This is an automated message from {project}, please do not reply.</p>
    </div>
    """
