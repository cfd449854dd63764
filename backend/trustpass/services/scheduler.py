"""
Daily DBS expiry scan and the background task that triggers it.

The task wakes up every hour but the scan itself is gated on the calendar
day stored in ``scheduler_state``, so real work happens at most once per
day and a restart does not cause a second run on the same day.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Optional, Sequence

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import Settings
from ..models import Employee, NotificationType, SchedulerState
from ..repository import EmployeeRepository
from .mailer import EmployeeSummary, Mailer, send_status_notification
from .notifications import record_notification, was_recently_notified

logger = structlog.get_logger(__name__)


@dataclass
class ScanResult:
    skipped: bool = False
    expiring_notified: list[str] = field(default_factory=list)
    expired_notified: list[str] = field(default_factory=list)
    expiring_email_sent: bool | None = None
    expired_email_sent: bool | None = None


async def get_last_check_date(session: AsyncSession) -> date | None:
    state = await session.get(SchedulerState, 1)
    return state.last_dbs_check_date if state else None


async def set_last_check_date(session: AsyncSession, day: date) -> None:
    state = await session.get(SchedulerState, 1)
    if state is None:
        state = SchedulerState(id=1)
        session.add(state)
    state.last_dbs_check_date = day
    await session.commit()


async def _filter_not_notified(
    session: AsyncSession,
    employees: Sequence[Employee],
    notification_type: NotificationType,
    window_days: int,
    now: datetime,
) -> list[EmployeeSummary]:
    pending = []
    for employee in employees:
        if not await was_recently_notified(
            session, employee.id, notification_type, window_days, now=now
        ):
            pending.append(EmployeeSummary.from_employee(employee))
    return pending


async def _notify_batch(
    session: AsyncSession,
    mailer: Mailer,
    settings: Settings,
    employees: list[EmployeeSummary],
    notification_type: NotificationType,
    now: datetime,
) -> bool:
    """Send one email for the whole batch and record a row per employee on success."""

    sent = await send_status_notification(mailer, settings, employees, notification_type)
    if not sent:
        logger.warning(
            "dbs_notification_failed", type=notification_type.value, count=len(employees)
        )
        return False

    for employee in employees:
        await record_notification(
            session,
            employee.id,
            notification_type,
            {"expiry_date": employee.dbs_expiry_date},
            sent_at=now,
            commit=False,
        )
    await session.commit()
    logger.info("dbs_notification_sent", type=notification_type.value, count=len(employees))
    return True


async def check_dbs_expiry(
    session: AsyncSession,
    mailer: Mailer,
    settings: Settings,
    now: datetime | None = None,
    today: date | None = None,
    force: bool = False,
) -> ScanResult:
    """Email admins about expiring and expired DBS certificates.

    Runs at most once per calendar day unless ``force`` is set. Storage errors
    propagate and leave the day gate untouched; mail failures only mean no
    Notification rows are written, so the same employees are retried on the
    next run.
    """

    now = now or datetime.utcnow()
    today = today or date.today()

    if not force and await get_last_check_date(session) == today:
        return ScanResult(skipped=True)

    logger.info("dbs_check_started", day=today.isoformat(), forced=force)
    result = ScanResult()
    repo = EmployeeRepository(session)
    window = settings.dbs_notification_window_days

    expiring = await repo.expiring_dbs(settings.dbs_expiry_horizon_days, now=now)
    to_notify_expiring = await _filter_not_notified(
        session, expiring, NotificationType.DBS_EXPIRY, window, now
    )
    if to_notify_expiring:
        logger.info(
            "dbs_expiring_found",
            employees=[f"{e.full_name} ({e.employee_code})" for e in to_notify_expiring],
        )
        result.expiring_email_sent = await _notify_batch(
            session, mailer, settings, to_notify_expiring, NotificationType.DBS_EXPIRY, now
        )
        if result.expiring_email_sent:
            result.expiring_notified = [e.employee_code for e in to_notify_expiring]
    else:
        logger.info("dbs_expiring_none")

    with_expiry = await repo.with_dbs_expiry()
    expired = [e for e in with_expiry if e.dbs_expiry_date < now]
    to_notify_expired = await _filter_not_notified(
        session, expired, NotificationType.DBS_EXPIRED, window, now
    )
    if to_notify_expired:
        logger.info("dbs_expired_found", count=len(to_notify_expired))
        result.expired_email_sent = await _notify_batch(
            session, mailer, settings, to_notify_expired, NotificationType.DBS_EXPIRED, now
        )
        if result.expired_email_sent:
            result.expired_notified = [e.employee_code for e in to_notify_expired]

    await set_last_check_date(session, today)
    return result


class DbsExpiryScheduler:
    """Runs the expiry scan at startup and then on a fixed interval."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        mailer_factory: Callable[[], Mailer],
        settings: Settings,
    ) -> None:
        self.session_factory = session_factory
        self.mailer_factory = mailer_factory
        self.settings = settings
        self._task: Optional[asyncio.Task] = None
        self._running = False

    async def run_once(self) -> ScanResult | None:
        """Run one gated scan, logging instead of raising on failure."""

        try:
            async with self.session_factory() as session:
                return await check_dbs_expiry(session, self.mailer_factory(), self.settings)
        except SQLAlchemyError:
            logger.exception("dbs_check_storage_error")
        except Exception:
            logger.exception("dbs_check_failed")
        return None

    def start(self) -> None:
        if self._running:
            logger.warning("dbs_scheduler_already_running")
            return
        self._running = True

        async def loop():
            while self._running:
                await self.run_once()
                await asyncio.sleep(self.settings.scheduler_interval_seconds)

        self._task = asyncio.create_task(loop())
        logger.info(
            "dbs_scheduler_started", interval_seconds=self.settings.scheduler_interval_seconds
        )

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("dbs_scheduler_stopped")

    def is_running(self) -> bool:
        return self._running
