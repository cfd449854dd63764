"""FastAPI application entry point."""
from pathlib import Path

import structlog
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from . import models
from .auth import router as auth_router
from .config import get_settings
from .database import AsyncSessionLocal, engine
from .dependencies import get_mailer
from .logging import RequestIdMiddleware, setup_logging
from .network import AdminNetworkMiddleware
from .routers.employees import router as employees_router
from .routers.notifications import router as notifications_router
from .routers.system import router as system_router
from .services.scheduler import DbsExpiryScheduler

settings = get_settings()
setup_logging(settings.log_level)
logger = structlog.get_logger(__name__)

app = FastAPI(title="Trust Pass Employee Verification", version="0.1.0")
app.add_middleware(
    AdminNetworkMiddleware,
    allowed_networks=settings.admin_allowed_networks,
    enabled=settings.restrict_admin_network,
)
app.add_middleware(RequestIdMiddleware)
app.include_router(auth_router)
app.include_router(employees_router)
app.include_router(system_router)
app.include_router(notifications_router)

Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")

scheduler = DbsExpiryScheduler(AsyncSessionLocal, get_mailer, settings)


@app.on_event("startup")
async def on_startup() -> None:
    """Ensure database tables exist and start the expiry scheduler."""

    async with engine.begin() as conn:
        await conn.run_sync(models.Base.metadata.create_all)

    if settings.scheduler_enabled:
        scheduler.start()
    logger.info("app_started", scheduler_enabled=settings.scheduler_enabled)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await scheduler.stop()


@app.get("/health", tags=["system"])
async def healthcheck() -> dict[str, str]:
    """Simple readiness probe for uptime checks."""

    return {"status": "ok"}
