"""Derive the displayed verification status of an employee."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Protocol


class EmployeeStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    INACTIVE = "inactive"
    CLEARANCE_EXPIRED = "clearance_expired"


class StatusFacts(Protocol):
    is_active: bool
    is_suspended: bool
    dbs_expiry_date: datetime | None


def classify(employee: StatusFacts, now: datetime) -> EmployeeStatus:
    """Return the status shown on the verification page.

    Checks run from the most to the least severe outcome and the first match
    wins, so a suspended employee with an expired certificate is reported as
    suspended. Employment type and ``valid_until_date`` are informational
    only and never change the status.
    """

    if employee.is_suspended:
        return EmployeeStatus.SUSPENDED
    if not employee.is_active:
        return EmployeeStatus.INACTIVE
    if employee.dbs_expiry_date is not None and employee.dbs_expiry_date < now:
        return EmployeeStatus.CLEARANCE_EXPIRED
    return EmployeeStatus.ACTIVE
