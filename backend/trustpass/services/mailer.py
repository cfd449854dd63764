"""
Outbound email for administrator alerts.

Messages go out one per recipient over SMTP. The caller only learns a single
boolean for the whole batch: any failed recipient marks the batch failed, even
if earlier recipients already received their copy.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from email.message import EmailMessage
from html import escape
from typing import Iterable, Sequence

import aiosmtplib
import structlog

from ..config import Settings
from ..models import NotificationType

logger = structlog.get_logger(__name__)

APP_NAME = "Trust Pass"


@dataclass(frozen=True)
class EmployeeSummary:
    """The employee fields an alert email needs."""

    id: int
    employee_code: str
    full_name: str
    dbs_expiry_date: datetime | None = None

    @classmethod
    def from_employee(cls, employee) -> "EmployeeSummary":
        return cls(
            id=employee.id,
            employee_code=employee.employee_code,
            full_name=employee.full_name,
            dbs_expiry_date=employee.dbs_expiry_date,
        )


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    text: str
    html: str


class Mailer(ABC):
    """Email transport interface."""

    @abstractmethod
    async def send(
        self,
        recipients: Sequence[str],
        sender: str,
        subject: str,
        text: str,
        html: str,
    ) -> bool:
        """Deliver one message per recipient. True only if all were accepted."""


class SmtpMailer(Mailer):
    """Sends through the SMTP server described by the settings."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    async def send(
        self,
        recipients: Sequence[str],
        sender: str,
        subject: str,
        text: str,
        html: str,
    ) -> bool:
        if not self.settings.smtp_host:
            logger.warning("email_skipped", reason="smtp_not_configured")
            return False
        if not recipients:
            logger.warning("email_skipped", reason="no_recipients")
            return False

        for recipient in recipients:
            try:
                await self._deliver(build_message(sender, recipient, subject, text, html))
            except (aiosmtplib.SMTPException, OSError) as exc:
                logger.error(
                    "email_send_failed", subject=subject, recipient=recipient, error=str(exc)
                )
                return False

        logger.info("email_sent", subject=subject, recipients=list(recipients))
        return True

    async def _deliver(self, message: EmailMessage) -> None:
        settings = self.settings
        authenticate = bool(settings.smtp_username and settings.smtp_password)
        await aiosmtplib.send(
            message,
            hostname=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username if authenticate else None,
            password=settings.smtp_password if authenticate else None,
            start_tls=settings.smtp_tls,
            timeout=30,
        )


def build_message(sender: str, recipient: str, subject: str, text: str, html: str) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = sender
    msg["To"] = recipient
    msg.set_content(text)
    msg.add_alternative(html, subtype="html")
    return msg


# subject prefix, title, lead paragraph, accent colour
_TEMPLATES = {
    NotificationType.DBS_EXPIRY: (
        "DBS Certificates Expiring Soon",
        "DBS Certificate Expiry Alert",
        "This is an automated notification that the following employee(s) have "
        "DBS certificates expiring within the next 2 months:",
        "#16A34A",
    ),
    NotificationType.DBS_EXPIRED: (
        "DBS Certificates EXPIRED",
        "DBS Certificate Expired Alert",
        "URGENT: The following employee(s) have DBS certificates that have already expired:",
        "#dc2626",
    ),
    NotificationType.EMPLOYEE_SUSPENDED: (
        "Employee(s) Suspended",
        "Employee Suspension Alert",
        "This is an automated notification that the following employee(s) have been suspended:",
        "#ea580c",
    ),
    NotificationType.EMPLOYEE_DEACTIVATED: (
        "Employee(s) Deactivated",
        "Employee Deactivation Alert",
        "This is an automated notification that the following employee(s) have been deactivated:",
        "#6b7280",
    ),
}

_DBS_TYPES = (NotificationType.DBS_EXPIRY, NotificationType.DBS_EXPIRED)


def format_date(value: datetime | None) -> str:
    return value.strftime("%d/%m/%Y") if value else "unknown"


def render_status_notification(
    employees: Iterable[EmployeeSummary], notification_type: NotificationType
) -> RenderedEmail:
    """Build subject, plain-text and HTML bodies for an admin alert."""

    notification_type = NotificationType(notification_type)
    employees = list(employees)
    prefix, title, message, color = _TEMPLATES[notification_type]
    is_dbs = notification_type in _DBS_TYPES
    closing = (
        "Please ensure these DBS certificates are renewed before they expire to maintain compliance."
        if is_dbs
        else "Please review these employee status changes."
    )

    text_lines = []
    html_rows = []
    for emp in employees:
        line = f"• {emp.full_name} ({emp.employee_code})"
        row = f"<strong>{escape(emp.full_name)}</strong> ({escape(emp.employee_code)})<br>"
        if is_dbs:
            expiry = format_date(emp.dbs_expiry_date)
            line += f" - DBS expires: {expiry}"
            row += f'<span style="color: {color};">DBS Expiry: {expiry}</span>'
        elif notification_type is NotificationType.EMPLOYEE_SUSPENDED:
            row += f'<span style="color: {color};">Status: Suspended</span>'
        else:
            row += f'<span style="color: {color};">Status: Deactivated</span>'
        text_lines.append(line)
        html_rows.append(f'<div style="margin-bottom: 10px;">{row}</div>')

    employee_list = "\n".join(text_lines)
    text = (
        f"{title}\n\n"
        "Dear Admin,\n\n"
        f"{message}\n\n"
        f"{employee_list}\n\n"
        f"{closing}\n\n"
        f"Best regards,\n{APP_NAME}\n\n"
        "---\n"
        f"This is an automated message from {APP_NAME}.\n"
    )
    html = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <div style="background-color: {color}; color: white; padding: 20px; text-align: center;">
        <h1>{title}</h1>
      </div>
      <div style="padding: 20px;">
        <p>Dear Admin,</p>
        <p>{message}</p>
        <div style="background-color: #f9f9f9; border-left: 4px solid {color}; padding: 15px; margin: 20px 0;">
          {''.join(html_rows)}
        </div>
        <p>{closing}</p>
        <p>Best regards,<br>{APP_NAME}</p>
      </div>
      <div style="background-color: #f3f4f6; padding: 15px; text-align: center; font-size: 12px; color: #6b7280;">
        <p>This is an automated message from {APP_NAME}.</p>
      </div>
    </div>
    """
    return RenderedEmail(
        subject=f"{prefix} - {len(employees)} Employee(s)",
        text=text,
        html=html,
    )


async def send_status_notification(
    mailer: Mailer,
    settings: Settings,
    employees: Sequence[EmployeeSummary],
    notification_type: NotificationType,
) -> bool:
    """Render an alert and send it to every configured administrator."""

    if not settings.mail_from:
        logger.warning("email_skipped", reason="mail_from_not_configured")
        return False
    rendered = render_status_notification(employees, notification_type)
    return await mailer.send(
        settings.admin_notification_emails,
        settings.mail_from,
        rendered.subject,
        rendered.text,
        rendered.html,
    )
