"""
Notification de-duplication and inline status-change alerts.

A Notification row is only ever written after the mail transport reported
success, so "a row exists" always means "an email went out". Checking and
recording are two separate statements: two overlapping callers can both see
"not yet notified" and both send. That race is accepted; the service runs a
single scheduler and admin edits are rare.
"""
from __future__ import annotations

import json
from datetime import datetime, timedelta
from typing import Any, Mapping

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..models import Employee, Notification, NotificationType
from .mailer import EmployeeSummary, Mailer, send_status_notification

logger = structlog.get_logger(__name__)


async def was_recently_notified(
    session: AsyncSession,
    employee_id: int,
    notification_type: NotificationType | str,
    window_days: int | None = None,
    now: datetime | None = None,
) -> bool:
    """Return True if a notification of this type exists for the employee.

    With ``window_days`` only rows sent strictly after ``now - window_days``
    count: a row sent at ``t0`` matches during ``[t0, t0 + window)`` and no
    longer at ``t0 + window``. Without a window any row ever sent matches.
    """

    stmt = select(Notification.id).where(
        Notification.employee_id == employee_id,
        Notification.type == NotificationType(notification_type).value,
    )
    if window_days is not None:
        cutoff = (now or datetime.utcnow()) - timedelta(days=window_days)
        stmt = stmt.where(Notification.sent_at > cutoff)
    result = await session.execute(stmt.limit(1))
    return result.first() is not None


async def record_notification(
    session: AsyncSession,
    employee_id: int,
    notification_type: NotificationType | str,
    details: Mapping[str, Any] | None = None,
    sent_at: datetime | None = None,
    commit: bool = True,
) -> Notification:
    """Append a sent-notification row. Call only after a successful send."""

    notification = Notification(
        employee_id=employee_id,
        type=NotificationType(notification_type).value,
        sent_at=sent_at or datetime.utcnow(),
        details=json.dumps(details, default=str) if details is not None else None,
    )
    session.add(notification)
    if commit:
        await session.commit()
    return notification


async def notify_status_change(
    session: AsyncSession,
    mailer: Mailer,
    settings: Settings,
    employee: Employee,
    was_active: bool,
    was_suspended: bool,
    now: datetime | None = None,
) -> list[NotificationType]:
    """Email admins when an update suspended or deactivated an employee.

    Only the false->true suspension and true->false deactivation transitions
    fire. Each type is sent at most once per
    ``status_notification_window_days``. Returns the types recorded.
    """

    now = now or datetime.utcnow()
    # Snapshot before any rollback expires the ORM instance
    summary = EmployeeSummary.from_employee(employee)
    triggered: list[tuple[NotificationType, dict[str, Any]]] = []
    if employee.is_suspended and not was_suspended:
        triggered.append((NotificationType.EMPLOYEE_SUSPENDED, {"suspended_at": now}))
    if was_active and not employee.is_active:
        triggered.append((NotificationType.EMPLOYEE_DEACTIVATED, {"deactivated_at": now}))

    recorded: list[NotificationType] = []
    for notification_type, details in triggered:
        try:
            if await was_recently_notified(
                session,
                summary.id,
                notification_type,
                settings.status_notification_window_days,
                now=now,
            ):
                logger.info(
                    "status_notification_skipped",
                    employee_code=summary.employee_code,
                    type=notification_type.value,
                )
                continue

            sent = await send_status_notification(mailer, settings, [summary], notification_type)
            if not sent:
                logger.warning(
                    "status_notification_failed",
                    employee_code=summary.employee_code,
                    type=notification_type.value,
                )
                continue

            await record_notification(
                session, summary.id, notification_type, details, sent_at=now
            )
            recorded.append(notification_type)
            logger.info(
                "status_notification_sent",
                employee_code=summary.employee_code,
                type=notification_type.value,
            )
        except SQLAlchemyError:
            await session.rollback()
            logger.exception(
                "status_notification_storage_error",
                employee_code=summary.employee_code,
                type=notification_type.value,
            )
    return recorded
