"""Admin triggers for the notification pipeline."""
import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..dependencies import get_app_settings, get_current_admin, get_db_session, get_mailer
from ..models import AdminUser
from ..schemas import EmailTestResult, ScanReport
from ..services.mailer import APP_NAME, Mailer
from ..services.scheduler import check_dbs_expiry

router = APIRouter(prefix="/notifications", tags=["notifications"])
logger = structlog.get_logger(__name__)


@router.post("/check-dbs-expiry", response_model=ScanReport)
async def run_dbs_check(
    current_admin: AdminUser = Depends(get_current_admin),
    session: AsyncSession = Depends(get_db_session),
    mailer: Mailer = Depends(get_mailer),
    settings: Settings = Depends(get_app_settings),
) -> ScanReport:
    """Run the expiry scan now, ignoring the once-per-day gate."""

    logger.info("dbs_check_manual", admin_id=current_admin.id)
    result = await check_dbs_expiry(session, mailer, settings, force=True)
    return ScanReport(**vars(result))


@router.post("/test-email", response_model=EmailTestResult)
async def send_test_email(
    current_admin: AdminUser = Depends(get_current_admin),
    mailer: Mailer = Depends(get_mailer),
    settings: Settings = Depends(get_app_settings),
) -> EmailTestResult:
    """Check mail delivery to the configured administrators."""

    success = await mailer.send(
        settings.admin_notification_emails,
        settings.mail_from or "",
        f"{APP_NAME} Email System Test",
        f"This is a test email from your {APP_NAME} Employee Verification System.",
        f"<p>This is a test email from your <strong>{APP_NAME} Employee Verification System</strong>.</p>",
    )
    return EmailTestResult(
        success=success,
        message="Test email sent successfully!" if success else "Test email failed to send",
    )
