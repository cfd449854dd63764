"""SQLAlchemy models exposed by the backend."""
from .admin_user import AdminUser
from .base import Base
from .employee import Employee, EmploymentType, Verification
from .notification import Notification, NotificationType
from .scheduler_state import SchedulerState

__all__ = [
    "AdminUser",
    "Base",
    "Employee",
    "EmploymentType",
    "Notification",
    "NotificationType",
    "SchedulerState",
    "Verification",
]
