"""Query helpers for employees and their verification log."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Employee, Notification, Verification


class EmployeeRepository:
    """Thin wrapper around an AsyncSession for employee-centric queries."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, employee_id: int) -> Employee | None:
        return await self.session.get(Employee, employee_id)

    async def get_by_code(self, employee_code: str) -> Employee | None:
        result = await self.session.execute(
            select(Employee).where(Employee.employee_code == employee_code)
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> Sequence[Employee]:
        """Return every employee, newest first."""

        result = await self.session.execute(
            select(Employee).order_by(Employee.created_at.desc(), Employee.id.desc())
        )
        return list(result.scalars().all())

    async def create(self, **values: Any) -> Employee:
        employee = Employee(**values)
        self.session.add(employee)
        await self.session.commit()
        await self.session.refresh(employee)
        return employee

    async def update(self, employee: Employee, **values: Any) -> Employee:
        for field, value in values.items():
            setattr(employee, field, value)
        employee.updated_at = datetime.utcnow()
        await self.session.commit()
        await self.session.refresh(employee)
        return employee

    async def delete(self, employee: Employee) -> None:
        """Delete an employee together with its verification and notification rows."""

        await self.session.execute(
            delete(Verification).where(Verification.employee_id == employee.id)
        )
        await self.session.execute(
            delete(Notification).where(Notification.employee_id == employee.id)
        )
        await self.session.delete(employee)
        await self.session.commit()

    async def record_verification(self, employee: Employee, verifier_ip: str | None) -> Verification:
        verification = Verification(employee_id=employee.id, verifier_ip=verifier_ip)
        self.session.add(verification)
        await self.session.commit()
        return verification

    async def verifications_for(self, employee_id: int) -> Sequence[Verification]:
        result = await self.session.execute(
            select(Verification)
            .where(Verification.employee_id == employee_id)
            .order_by(Verification.verified_at.desc())
        )
        return list(result.scalars().all())

    async def stats(self, now: datetime | None = None) -> dict[str, int]:
        """Counters for the admin dashboard."""

        now = now or datetime.utcnow()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)

        async def count(*criteria) -> int:
            stmt = select(func.count()).select_from(Employee)
            if criteria:
                stmt = stmt.where(*criteria)
            return (await self.session.execute(stmt)).scalar_one()

        today_verifications = (
            await self.session.execute(
                select(func.count())
                .select_from(Verification)
                .where(Verification.verified_at >= start_of_day)
            )
        ).scalar_one()

        return {
            "active_employees": await count(
                Employee.is_active.is_(True), Employee.is_suspended.is_(False)
            ),
            "inactive_employees": await count(Employee.is_active.is_(False)),
            "suspended_employees": await count(Employee.is_suspended.is_(True)),
            "total_employees": await count(),
            "today_verifications": today_verifications,
        }

    async def expiring_dbs(
        self, days_from_now: int | None, now: datetime | None = None
    ) -> Sequence[Employee]:
        """Active employees whose DBS expiry is set and falls on or before now + days.

        ``days_from_now=None`` drops the horizon and returns every active
        employee with an expiry date.
        """

        stmt = select(Employee).where(
            Employee.is_active.is_(True),
            Employee.dbs_expiry_date.is_not(None),
        )
        if days_from_now is not None:
            threshold = (now or datetime.utcnow()) + timedelta(days=days_from_now)
            stmt = stmt.where(Employee.dbs_expiry_date <= threshold)
        result = await self.session.execute(stmt.order_by(Employee.dbs_expiry_date))
        return list(result.scalars().all())

    async def with_dbs_expiry(self) -> Sequence[Employee]:
        """Active employees that have a DBS expiry date recorded."""

        return await self.expiring_dbs(None)
