"""Email delivery for composed review requests.

StubEmailSender acknowledges without delivering. SmtpEmailSender is the
real transport and can replace it without changing callers.
"""

from __future__ import annotations

import asyncio
import logging
import re
import smtplib
import ssl
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.message import EmailMessage
from email.utils import formataddr, make_msgid

import certifi

from submittal_review.config import Settings
from submittal_review.models.schemas import EmailRecipient

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
DEFAULT_SUBJECT = "Review Required: Submittal Compliance Issues"


class EmailValidationError(ValueError):
    """A send request is missing recipients or body."""


@dataclass(frozen=True)
class EmailSendResult:
    """Result of an email send attempt."""
    success: bool
    sent_at: datetime | None = None
    recipients: list[str] = field(default_factory=list)
    message_id: str | None = None
    error: str | None = None


def validate_email_address(email: str) -> bool:
    return bool(email) and EMAIL_PATTERN.match(email.strip()) is not None


def validate_send_request(recipients: list[EmailRecipient], body: str | None) -> None:
    if not recipients:
        raise EmailValidationError("No recipients provided")
    if not body or not body.strip():
        raise EmailValidationError("No email body provided")


class StubEmailSender:
    """Pretend to deliver: wait, log and acknowledge."""

    def __init__(self, *, from_email: str, delay_seconds: float = 1.5) -> None:
        self.from_email = from_email
        self.delay_seconds = delay_seconds

    async def send(
        self,
        *,
        subject: str,
        body: str,
        recipients: list[EmailRecipient],
    ) -> EmailSendResult:
        validate_send_request(recipients, body)
        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)

        to_emails = [recipient.email for recipient in recipients]
        logger.info(
            "Stub email accepted",
            extra={"recipients": to_emails, "subject": subject, "body_chars": len(body)},
        )
        return EmailSendResult(
            success=True,
            sent_at=datetime.now(timezone.utc),
            recipients=to_emails,
            message_id=_make_message_id(self.from_email),
        )


class SmtpEmailSender:
    """Send plain-text emails via SMTP with optional TLS/SSL."""

    def __init__(
        self,
        *,
        host: str,
        port: int,
        username: str,
        password: str,
        from_email: str,
        use_tls: bool = True,
        use_ssl: bool = False,
        timeout_seconds: float = 30.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email
        self.use_tls = use_tls
        self.use_ssl = use_ssl
        self.timeout_seconds = timeout_seconds

    async def send(
        self,
        *,
        subject: str,
        body: str,
        recipients: list[EmailRecipient],
    ) -> EmailSendResult:
        validate_send_request(recipients, body)
        return await asyncio.to_thread(self.send_text, subject=subject, body=body, recipients=recipients)

    def send_text(
        self,
        *,
        subject: str,
        body: str,
        recipients: list[EmailRecipient],
    ) -> EmailSendResult:
        if not self.host:
            return EmailSendResult(success=False, error="SMTP host not configured.")
        if not self.from_email:
            return EmailSendResult(success=False, error="From email is missing.")
        if not self.username or not self.password:
            return EmailSendResult(success=False, error="SMTP credentials are missing.")

        cleaned_to = [r.email.strip() for r in recipients if r.email and r.email.strip()]
        if not cleaned_to:
            return EmailSendResult(success=False, error="Recipient list is empty after cleanup.")

        message_id = _make_message_id(self.from_email)
        msg = EmailMessage()
        # Header values cannot carry line breaks.
        msg["Subject"] = " ".join((subject or "").split()) or DEFAULT_SUBJECT
        msg["From"] = self.from_email
        msg["To"] = ", ".join(_format_address(r) for r in recipients if r.email.strip())
        msg["Message-ID"] = message_id
        msg.set_content(body)

        try:
            if self.use_ssl:
                context = ssl.create_default_context(cafile=certifi.where())
                with smtplib.SMTP_SSL(
                    self.host,
                    self.port,
                    timeout=self.timeout_seconds,
                    context=context,
                ) as smtp:
                    smtp.login(self.username, self.password)
                    smtp.send_message(msg)
            else:
                with smtplib.SMTP(self.host, self.port, timeout=self.timeout_seconds) as smtp:
                    smtp.ehlo()
                    if self.use_tls:
                        smtp.starttls(context=ssl.create_default_context(cafile=certifi.where()))
                        smtp.ehlo()
                    smtp.login(self.username, self.password)
                    smtp.send_message(msg)
        except Exception as exc:
            logger.exception("SMTP send failed.")
            return EmailSendResult(success=False, error=str(exc))

        return EmailSendResult(
            success=True,
            sent_at=datetime.now(timezone.utc),
            recipients=cleaned_to,
            message_id=message_id,
        )


def build_email_sender(settings: Settings) -> StubEmailSender | SmtpEmailSender:
    """SMTP when SEND_EMAIL is enabled, otherwise the stub."""
    if settings.send_email:
        return SmtpEmailSender(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            from_email=settings.from_email,
            use_tls=settings.smtp_use_tls,
            use_ssl=settings.smtp_use_ssl,
            timeout_seconds=settings.smtp_timeout_seconds,
        )
    return StubEmailSender(from_email=settings.from_email, delay_seconds=settings.send_delay_seconds)


def _format_address(recipient: EmailRecipient) -> str:
    email = recipient.email.strip()
    name = recipient.name.strip()
    if name and name != email:
        return formataddr((name, email))
    return email


def _make_message_id(from_email: str) -> str:
    if "@" in from_email:
        domain = from_email.split("@", 1)[1].strip()
        return make_msgid(domain=domain)
    return make_msgid()
