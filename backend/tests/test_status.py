"""Status classification precedence."""
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from trustpass.services.status import EmployeeStatus, classify

NOW = datetime(2025, 6, 1, 12, 0, 0)
EXPIRY_CHOICES = [None, NOW - timedelta(days=5), NOW + timedelta(days=5)]


def employee(is_active=True, is_suspended=False, dbs_expiry_date=None):
    return SimpleNamespace(
        is_active=is_active, is_suspended=is_suspended, dbs_expiry_date=dbs_expiry_date
    )


@pytest.mark.parametrize("is_active", [True, False])
@pytest.mark.parametrize("expiry", EXPIRY_CHOICES)
def test_suspension_wins_over_everything(is_active, expiry) -> None:
    emp = employee(is_active=is_active, is_suspended=True, dbs_expiry_date=expiry)
    assert classify(emp, NOW) is EmployeeStatus.SUSPENDED


@pytest.mark.parametrize("expiry", EXPIRY_CHOICES)
def test_inactive_ignores_clearance(expiry) -> None:
    emp = employee(is_active=False, dbs_expiry_date=expiry)
    assert classify(emp, NOW) is EmployeeStatus.INACTIVE


def test_expired_clearance() -> None:
    emp = employee(dbs_expiry_date=NOW - timedelta(seconds=1))
    assert classify(emp, NOW) is EmployeeStatus.CLEARANCE_EXPIRED


@pytest.mark.parametrize("expiry", [None, NOW, NOW + timedelta(days=30)])
def test_active_when_clearance_valid_or_missing(expiry) -> None:
    assert classify(employee(dbs_expiry_date=expiry), NOW) is EmployeeStatus.ACTIVE


def test_temporary_end_date_does_not_affect_status() -> None:
    emp = employee()
    emp.employment_type = "temporary"
    emp.valid_until_date = NOW - timedelta(days=30)
    assert classify(emp, NOW) is EmployeeStatus.ACTIVE
