"""Pydantic schemas used across the backend API."""
from datetime import datetime, timedelta, timezone
from typing import Annotated, Literal, Union

from pydantic import AfterValidator, BaseModel, Field, EmailStr

from .services.status import EmployeeStatus, classify


def as_naive_utc(value: datetime) -> datetime:
    """Timestamps are stored as naive UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


UtcDateTime = Annotated[datetime, AfterValidator(as_naive_utc)]


class Token(BaseModel):
    """JWT response payload."""

    access_token: str
    token_type: str = "bearer"
    expires_at: datetime


class TokenData(BaseModel):
    """Information encoded into JWTs."""

    admin_id: int
    email: str


class AdminLogin(BaseModel):
    """Credentials supplied during login."""

    email: EmailStr
    password: str = Field(min_length=1)


class AdminCreate(BaseModel):
    """Payload for bootstrapping the first administrator."""

    email: EmailStr
    password: str = Field(min_length=8)


class AdminRead(BaseModel):
    """Public representation of an administrator."""

    id: int
    email: EmailStr

    class Config:
        from_attributes = True


class PermanentEmployment(BaseModel):
    type: Literal["permanent"] = "permanent"


class TemporaryEmployment(BaseModel):
    """Temporary staff must carry the date their engagement ends."""

    type: Literal["temporary"] = "temporary"
    valid_until: UtcDateTime


Employment = Annotated[
    Union[PermanentEmployment, TemporaryEmployment],
    Field(discriminator="type"),
]


class EmployeeBase(BaseModel):
    """Shared properties for employee operations."""

    full_name: str = Field(min_length=1)
    email: EmailStr | None = None
    dbs_number: str = Field(min_length=1)
    dbs_expiry_date: UtcDateTime | None = None
    position: str | None = None
    start_date: UtcDateTime


class EmployeeCreate(EmployeeBase):
    """Employee payload for creation."""

    employee_code: str = Field(min_length=1)
    employment: Employment = Field(default_factory=PermanentEmployment)
    is_active: bool = True
    is_suspended: bool = False


class EmployeeUpdate(BaseModel):
    """Partial update; only fields that are sent are applied."""

    employee_code: str | None = Field(default=None, min_length=1)
    full_name: str | None = Field(default=None, min_length=1)
    email: EmailStr | None = None
    dbs_number: str | None = Field(default=None, min_length=1)
    dbs_expiry_date: UtcDateTime | None = None
    position: str | None = None
    start_date: UtcDateTime | None = None
    employment: Employment | None = None
    is_active: bool | None = None
    is_suspended: bool | None = None


class EmployeeRead(EmployeeBase):
    """Employee representation returned by the API."""

    id: int
    employee_code: str
    employment_type: str
    valid_until_date: datetime | None = None
    photo_url: str | None = None
    is_active: bool
    is_suspended: bool
    status: EmployeeStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @classmethod
    def from_employee(cls, employee, now: datetime | None = None) -> "EmployeeRead":
        """Serialise an ORM employee together with its derived status."""

        data = {name: getattr(employee, name) for name in cls.model_fields if name != "status"}
        return cls(**data, status=classify(employee, now or datetime.utcnow()))


class EmployeeStats(BaseModel):
    """Dashboard counters."""

    active_employees: int
    inactive_employees: int
    suspended_employees: int
    total_employees: int
    today_verifications: int


class QrUrl(BaseModel):
    verification_url: str


class ScanReport(BaseModel):
    """Outcome of a DBS expiry scan."""

    skipped: bool
    expiring_notified: list[str] = Field(default_factory=list)
    expired_notified: list[str] = Field(default_factory=list)
    expiring_email_sent: bool | None = None
    expired_email_sent: bool | None = None


class EmailTestResult(BaseModel):
    success: bool
    message: str


def compute_expiry(minutes: int) -> datetime:
    """Return an absolute expiration timestamp for tokens."""

    return datetime.utcnow() + timedelta(minutes=minutes)
