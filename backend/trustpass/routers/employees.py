"""Employee endpoints: admin roster management and public verification."""
from datetime import datetime
from typing import Any

import structlog
from fastapi import APIRouter, Depends, File, HTTPException, Request, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..dependencies import get_app_settings, get_current_admin, get_db_session, get_mailer
from ..models import AdminUser, Employee, EmploymentType
from ..repository import EmployeeRepository
from ..schemas import (
    EmployeeCreate,
    EmployeeRead,
    EmployeeUpdate,
    Employment,
    QrUrl,
    TemporaryEmployment,
)
from ..services.mailer import Mailer
from ..services.notifications import notify_status_change
from ..services.photos import prune_missing_photos, save_photo
from ..services.qr import render_qr_png, verification_url

router = APIRouter(prefix="/employees", tags=["employees"])
logger = structlog.get_logger(__name__)


def employment_columns(employment: Employment) -> dict[str, Any]:
    """Flatten the employment union onto the two storage columns."""

    if isinstance(employment, TemporaryEmployment):
        return {
            "employment_type": EmploymentType.TEMPORARY.value,
            "valid_until_date": employment.valid_until,
        }
    return {"employment_type": EmploymentType.PERMANENT.value, "valid_until_date": None}


async def get_employee_or_404(employee_id: int, session: AsyncSession) -> Employee:
    employee = await EmployeeRepository(session).get(employee_id)
    if employee is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
    return employee


@router.get("/verify/{employee_code}", response_model=EmployeeRead)
async def verify_employee(
    employee_code: str,
    request: Request,
    session: AsyncSession = Depends(get_db_session),
) -> EmployeeRead:
    """Public lookup behind the QR code; every call is logged as a verification."""

    repo = EmployeeRepository(session)
    employee = await repo.get_by_code(employee_code)
    if employee is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")

    verifier_ip = request.client.host if request.client else None
    await repo.record_verification(employee, verifier_ip)
    result = EmployeeRead.from_employee(employee)
    logger.info("employee_verified", employee_code=employee_code, status=result.status.value)
    return result


@router.get("/", response_model=list[EmployeeRead])
async def list_employees(
    current_admin: AdminUser = Depends(get_current_admin),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> list[EmployeeRead]:
    """Return all employees, newest first."""

    repo = EmployeeRepository(session)
    await prune_missing_photos(repo, settings.upload_dir)
    now = datetime.utcnow()
    return [EmployeeRead.from_employee(employee, now) for employee in await repo.list_all()]


@router.post("/", response_model=EmployeeRead, status_code=status.HTTP_201_CREATED)
async def create_employee(
    payload: EmployeeCreate,
    current_admin: AdminUser = Depends(get_current_admin),
    session: AsyncSession = Depends(get_db_session),
) -> EmployeeRead:
    """Add an employee to the roster."""

    repo = EmployeeRepository(session)
    if await repo.get_by_code(payload.employee_code) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Employee ID already exists")

    employee = await repo.create(
        **payload.model_dump(exclude={"employment"}),
        **employment_columns(payload.employment),
    )
    logger.info("employee_created", employee_code=employee.employee_code, admin_id=current_admin.id)
    return EmployeeRead.from_employee(employee)


@router.get("/{employee_id}", response_model=EmployeeRead)
async def get_employee(
    employee_id: int,
    current_admin: AdminUser = Depends(get_current_admin),
    session: AsyncSession = Depends(get_db_session),
) -> EmployeeRead:
    return EmployeeRead.from_employee(await get_employee_or_404(employee_id, session))


@router.patch("/{employee_id}", response_model=EmployeeRead)
async def update_employee(
    employee_id: int,
    payload: EmployeeUpdate,
    current_admin: AdminUser = Depends(get_current_admin),
    session: AsyncSession = Depends(get_db_session),
    mailer: Mailer = Depends(get_mailer),
    settings: Settings = Depends(get_app_settings),
) -> EmployeeRead:
    """Apply a partial update and alert admins on suspension or deactivation."""

    repo = EmployeeRepository(session)
    employee = await get_employee_or_404(employee_id, session)
    was_active, was_suspended = employee.is_active, employee.is_suspended

    changes = payload.model_dump(exclude_unset=True, exclude={"employment"})
    if "employment" in payload.model_fields_set:
        if payload.employment is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Employment cannot be empty"
            )
        changes.update(employment_columns(payload.employment))
    for field in ("employee_code", "full_name", "dbs_number", "start_date", "is_active", "is_suspended"):
        if field in changes and changes[field] is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=f"{field} cannot be empty"
            )

    new_code = changes.get("employee_code")
    if new_code and new_code != employee.employee_code:
        if await repo.get_by_code(new_code) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Employee ID already exists")

    employee = await repo.update(employee, **changes)
    logger.info(
        "employee_updated",
        employee_code=employee.employee_code,
        fields=sorted(changes),
        admin_id=current_admin.id,
    )
    result = EmployeeRead.from_employee(employee)

    await notify_status_change(session, mailer, settings, employee, was_active, was_suspended)
    return result


@router.delete("/{employee_id}")
async def delete_employee(
    employee_id: int,
    current_admin: AdminUser = Depends(get_current_admin),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, str]:
    employee = await get_employee_or_404(employee_id, session)
    code = employee.employee_code
    await EmployeeRepository(session).delete(employee)
    logger.info("employee_deleted", employee_code=code, admin_id=current_admin.id)
    return {"message": "Employee deleted successfully"}


@router.post("/{employee_id}/photo", response_model=EmployeeRead)
async def upload_photo(
    employee_id: int,
    photo: UploadFile = File(...),
    current_admin: AdminUser = Depends(get_current_admin),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> EmployeeRead:
    """Store a new photo for the employee."""

    employee = await get_employee_or_404(employee_id, session)
    photo_url = await save_photo(photo, settings.upload_dir, settings.max_upload_bytes)
    employee = await EmployeeRepository(session).update(employee, photo_url=photo_url)
    return EmployeeRead.from_employee(employee)


@router.get("/{employee_id}/qr-url", response_model=QrUrl)
async def get_qr_url(
    employee_id: int,
    current_admin: AdminUser = Depends(get_current_admin),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> QrUrl:
    employee = await get_employee_or_404(employee_id, session)
    return QrUrl(verification_url=verification_url(settings, employee.employee_code))


@router.get("/{employee_id}/qr.png")
async def get_qr_image(
    employee_id: int,
    current_admin: AdminUser = Depends(get_current_admin),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> Response:
    """PNG badge QR code linking to the verification page."""

    employee = await get_employee_or_404(employee_id, session)
    png = render_qr_png(verification_url(settings, employee.employee_code))
    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": f'inline; filename="{employee.employee_code}-qr.png"'},
    )
