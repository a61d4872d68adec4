"""
TrabajaTecnico Backend — Transactional Mailer
==============================================

What:  Renders role-specific HTML mails and sends them over SMTP.
How:   Jinja2 templates (autoescaped) under ``templates/email``; aiosmtplib
       with STARTTLS for delivery; aiofiles to read the CV attachment.
Who:   Built once in the app lifespan (``Mailer.from_settings``), stored on
       ``app.state.mailer`` and handed to ApplicationService.
When:  After an application is committed (confirmation + operations notice).

``send`` never raises. Every outcome is a SendResult:

    delivered=True   provider_message_id=<Message-ID>
    delivered=False  reason="not_configured"         (no credentials)
    delivered=False  reason="attachment_missing"     (CV not readable)
    delivered=False  reason="transport_error: <Type>" (SMTP/network failure)
"""

import asyncio
import logging
import mimetypes
import re
from dataclasses import dataclass
from decimal import Decimal
from email.message import EmailMessage
from email.utils import make_msgid
from pathlib import Path
from typing import Any, Optional

import aiofiles
import aiosmtplib
from jinja2 import Environment, FileSystemLoader, select_autoescape

from trabajatecnico.config import Settings

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"


@dataclass(frozen=True)
class MailConfig:
    host: str
    port: int
    username: str
    password: str
    sender: str
    operations_email: str
    use_tls: bool = True
    timeout: float = 10.0

    @property
    def configured(self) -> bool:
        return bool(self.username and self.password)


@dataclass(frozen=True)
class Attachment:
    """A local file to attach; ``filename`` is the name the recipient sees."""

    path: Path
    filename: str


@dataclass(frozen=True)
class SendResult:
    delivered: bool
    provider_message_id: Optional[str] = None
    reason: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.delivered


def cv_attachment_name(technician_name: str, stored_filename: str) -> str:
    """``CV_<Name_With_Underscores>`` plus the stored file's extension."""
    safe_name = re.sub(r"\s+", "_", technician_name.strip()) or "technician"
    extension = Path(stored_filename).suffix.lower() or ".pdf"
    return f"CV_{safe_name}{extension}"


class Mailer:
    """
    SMTP mailer bound to one MailConfig.

    The config is read once; an unconfigured mailer short-circuits every
    send without opening a connection.
    """

    def __init__(self, config: MailConfig, template_dir: Path = TEMPLATE_DIR):
        self.config = config
        self.templates = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(["html"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Mailer":
        return cls(
            MailConfig(
                host=settings.email_host,
                port=settings.email_port,
                username=settings.email_user,
                password=settings.email_pass,
                sender=settings.email_sender,
                operations_email=settings.operations_email,
                use_tls=settings.email_use_tls,
                timeout=settings.email_timeout,
            )
        )

    @property
    def configured(self) -> bool:
        return self.config.configured

    def render(self, template_name: str, **context: Any) -> str:
        return self.templates.get_template(template_name).render(**context)

    # ══════════════════════════════════════════════════════════════════════
    # Transport
    # ══════════════════════════════════════════════════════════════════════

    async def send(
        self,
        recipient: str,
        subject: str,
        html_body: str,
        attachment: Optional[Attachment] = None,
    ) -> SendResult:
        if not self.configured:
            logger.warning("Email not configured; skipping '%s' to %s", subject, recipient)
            return SendResult(delivered=False, reason="not_configured")

        message = EmailMessage()
        message["From"] = self.config.sender
        message["To"] = recipient
        message["Subject"] = subject
        message_id = make_msgid(domain=self.config.sender.rpartition("@")[2] or None)
        message["Message-ID"] = message_id
        message.set_content(html_body, subtype="html")

        if attachment is not None:
            try:
                async with aiofiles.open(attachment.path, "rb") as f:
                    data = await f.read()
            except OSError as e:
                logger.warning(
                    "Attachment %s unreadable (%s); not sending '%s'",
                    attachment.path,
                    e.__class__.__name__,
                    subject,
                )
                return SendResult(delivered=False, reason="attachment_missing")

            mime_type, _ = mimetypes.guess_type(attachment.filename)
            maintype, _, subtype = (mime_type or "application/octet-stream").partition("/")
            message.add_attachment(
                data, maintype=maintype, subtype=subtype, filename=attachment.filename
            )

        try:
            await aiosmtplib.send(
                message,
                hostname=self.config.host,
                port=self.config.port,
                username=self.config.username,
                password=self.config.password,
                start_tls=self.config.use_tls,
                timeout=self.config.timeout,
            )
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as e:
            logger.warning("Sending '%s' to %s failed: %s", subject, recipient, e)
            return SendResult(delivered=False, reason=f"transport_error: {e.__class__.__name__}")

        logger.info("Email '%s' sent to %s (%s)", subject, recipient, message_id)
        return SendResult(delivered=True, provider_message_id=message_id)

    # ══════════════════════════════════════════════════════════════════════
    # Templates
    # ══════════════════════════════════════════════════════════════════════

    async def send_job_application(
        self,
        technician_name: str,
        technician_email: str,
        project_title: str,
        company_name: str,
        cover_letter: str,
        proposed_rate: Optional[Decimal] = None,
        cv_path: Optional[Path] = None,
    ) -> SendResult:
        """Internal notice to the operations mailbox, with the CV when present."""
        html = self.render(
            "job_application.html",
            technician_name=technician_name,
            technician_email=technician_email,
            project_title=project_title,
            company_name=company_name,
            cover_letter=cover_letter,
            proposed_rate=proposed_rate,
        )
        attachment = None
        if cv_path is not None:
            attachment = Attachment(
                path=cv_path, filename=cv_attachment_name(technician_name, cv_path.name)
            )
        return await self.send(
            self.config.operations_email,
            f"New Job Application - {project_title}",
            html,
            attachment=attachment,
        )

    async def send_application_confirmation(
        self, technician_email: str, technician_name: str, project_title: str
    ) -> SendResult:
        html = self.render(
            "application_confirmation.html",
            technician_name=technician_name,
            project_title=project_title,
        )
        return await self.send(
            technician_email, f"Application Confirmation - {project_title}", html
        )
