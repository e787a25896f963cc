"""
Email notifier — SMTP delivery of transactional mail.

Delivery is best-effort: `send` never raises. When SMTP credentials are
missing or still hold placeholder values the notifier flags itself as
unconfigured, skips delivery and logs a warning, so development setups run
without a mail provider.
"""

import asyncio
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid
from typing import Optional

import aiosmtplib

from crm.config import Settings, settings as default_settings
from crm.utils import Logger
from crm.utils.exceptions import EmailDeliveryFailure
from .templates import password_reset_template, welcome_template

logger = Logger("email")

PLACEHOLDER_USERS = {"your-email@gmail.com"}
PLACEHOLDER_PASSWORDS = {"your-sendgrid-api-key", "your-app-password"}


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class EmailNotifier:
    def __init__(self, config: Settings | None = None):
        self.config = config or default_settings
        self.is_configured = self._detect_configuration()

        if not self.is_configured:
            logger.warning(
                "Email service not properly configured. "
                "Please set SMTP credentials in environment variables."
            )
        else:
            logger.info(f"Email service configured with {self.config.smtp_host}")

    def _detect_configuration(self) -> bool:
        user = (self.config.smtp_user or "").strip()
        password = (self.config.smtp_pass or "").strip()
        if not user or not password:
            return False
        return user not in PLACEHOLDER_USERS and password not in PLACEHOLDER_PASSWORDS

    @property
    def sender(self) -> str:
        address = self.config.email_from_address or self.config.smtp_user
        return formataddr((self.config.email_from_name, address))

    def get_configuration(self) -> dict:
        return {
            "configured": self.is_configured,
            "provider": self.config.smtp_host if self.is_configured else None,
        }

    # ── Transport ────────────────────────────────────────────────
    def _build_message(self, to: str, subject: str, html: str, text: str | None) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = self.sender
        message["To"] = to
        message["Message-ID"] = make_msgid()
        if text:
            message.attach(MIMEText(text, "plain", "utf-8"))
        message.attach(MIMEText(html, "html", "utf-8"))
        return message

    async def _deliver(self, message: MIMEMultipart) -> None:
        try:
            await aiosmtplib.send(
                message,
                hostname=self.config.smtp_host,
                port=self.config.smtp_port,
                username=self.config.smtp_user,
                password=self.config.smtp_pass,
                use_tls=self.config.smtp_secure,
                start_tls=False if self.config.smtp_secure else None,
                timeout=self.config.smtp_timeout,
            )
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as exc:
            raise EmailDeliveryFailure(message["To"], str(exc)) from exc

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> DeliveryResult:
        if not self.is_configured:
            logger.warning(f"Email not sent - service not configured. Would send to: {to}")
            return DeliveryResult(success=False, error="Email service not configured")

        message = self._build_message(to, subject, html, text)
        try:
            await self._deliver(message)
        except EmailDeliveryFailure as exc:
            logger.error(str(exc))
            return DeliveryResult(success=False, error=exc.reason)

        message_id = message["Message-ID"]
        logger.info(f"Email sent successfully to {to}. Message ID: {message_id}")
        return DeliveryResult(success=True, message_id=message_id)

    async def verify_connection(self) -> DeliveryResult:
        """Open an SMTP session and authenticate, without sending anything."""
        if not self.is_configured:
            return DeliveryResult(success=False, error="Email service not configured")

        smtp = aiosmtplib.SMTP(
            hostname=self.config.smtp_host,
            port=self.config.smtp_port,
            use_tls=self.config.smtp_secure,
            start_tls=False if self.config.smtp_secure else None,
            timeout=self.config.smtp_timeout,
        )
        try:
            async with smtp:
                await smtp.login(self.config.smtp_user, self.config.smtp_pass)
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as exc:
            logger.error(f"Email service connection failed: {exc}")
            return DeliveryResult(success=False, error=str(exc))

        logger.info("Email service connection verified successfully")
        return DeliveryResult(success=True)

    # ── Templates ────────────────────────────────────────────────
    async def send_password_reset_email(
        self, email: str, reset_token: str, user_name: str
    ) -> DeliveryResult:
        reset_url = f"{self.config.frontend_url}/reset-password?token={reset_token}"
        template = password_reset_template(
            user_name=user_name,
            reset_url=reset_url,
            reset_token=reset_token,
            from_name=self.config.email_from_name,
            expires_in=_humanize_minutes(self.config.reset_token_ttl_minutes),
        )
        return await self.send(email, template.subject, template.html, template.text)

    async def send_welcome_email(self, email: str, user_name: str) -> DeliveryResult:
        template = welcome_template(
            user_name=user_name,
            login_url=f"{self.config.frontend_url}/login",
            from_name=self.config.email_from_name,
        )
        return await self.send(email, template.subject, template.html, template.text)


def _humanize_minutes(minutes: int) -> str:
    if minutes % 60 == 0:
        hours = minutes // 60
        return "1 hour" if hours == 1 else f"{hours} hours"
    return f"{minutes} minutes"
