"""Persisted state for the daily DBS expiry check."""
from datetime import date

from sqlalchemy import Date, Integer
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class SchedulerState(Base):
    """Single row recording the last calendar day the expiry scan ran."""

    __tablename__ = "scheduler_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    last_dbs_check_date: Mapped[date | None] = mapped_column(Date, nullable=True)
