"""Employee model and its verification log."""
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class EmploymentType(str, Enum):
    PERMANENT = "permanent"
    TEMPORARY = "temporary"


class Employee(TimestampMixin, Base):
    """An employee whose DBS clearance can be verified by QR code."""

    __tablename__ = "employees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_code: Mapped[str] = mapped_column(String, unique=True, index=True)
    full_name: Mapped[str] = mapped_column(String, index=True)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    dbs_number: Mapped[str] = mapped_column(String)
    dbs_expiry_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    position: Mapped[str | None] = mapped_column(String, nullable=True)
    start_date: Mapped[datetime] = mapped_column(DateTime)
    employment_type: Mapped[str] = mapped_column(String, default=EmploymentType.PERMANENT.value)
    # Only meaningful for temporary staff
    valid_until_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    photo_url: Mapped[str | None] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    is_suspended: Mapped[bool] = mapped_column(Boolean, default=False)


class Verification(Base):
    """Append-only record of a public verification lookup."""

    __tablename__ = "verifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_id: Mapped[int] = mapped_column(
        ForeignKey("employees.id", ondelete="CASCADE"), index=True
    )
    verified_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    verifier_ip: Mapped[str | None] = mapped_column(String, nullable=True)
