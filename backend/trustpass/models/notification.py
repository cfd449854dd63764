"""Sent-notification audit trail used for de-duplication."""
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class NotificationType(str, Enum):
    DBS_EXPIRY = "dbs_expiry"
    DBS_EXPIRED = "dbs_expired"
    EMPLOYEE_SUSPENDED = "employee_suspended"
    EMPLOYEE_DEACTIVATED = "employee_deactivated"


class Notification(Base):
    """One row per employee per successfully sent notification email."""

    __tablename__ = "notifications"

    __table_args__ = (
        Index("ix_notifications_employee_type_sent", "employee_id", "type", "sent_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"))
    type: Mapped[str] = mapped_column(String(50))
    sent_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
