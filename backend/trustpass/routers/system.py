"""Dashboard statistics."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import get_current_admin, get_db_session
from ..models import AdminUser
from ..repository import EmployeeRepository
from ..schemas import EmployeeStats

router = APIRouter(tags=["system"])


@router.get("/stats", response_model=EmployeeStats)
async def get_stats(
    current_admin: AdminUser = Depends(get_current_admin),
    session: AsyncSession = Depends(get_db_session),
) -> EmployeeStats:
    """Roster counters and today's verification count."""

    return EmployeeStats(**await EmployeeRepository(session).stats())
