"""
Employee photo storage on the local filesystem.
Files live in ``upload_dir`` and are served under ``/uploads``.
"""
from __future__ import annotations

import random
import time
from pathlib import Path

import structlog
from fastapi import HTTPException, UploadFile, status

from ..repository import EmployeeRepository

logger = structlog.get_logger(__name__)

URL_PREFIX = "/uploads/"


def photo_filename(original_name: str | None) -> str:
    suffix = Path(original_name or "").suffix.lower()
    unique = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    return f"employee-{unique}{suffix}"


async def save_photo(upload: UploadFile, upload_dir: str, max_bytes: int) -> str:
    """Validate and store an uploaded image, returning its public URL."""

    if not (upload.content_type or "").startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail="Only image files are allowed",
        )

    content = await upload.read(max_bytes + 1)
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty")
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Uploaded file is too large",
        )

    base = Path(upload_dir)
    base.mkdir(parents=True, exist_ok=True)
    filename = photo_filename(upload.filename)
    (base / filename).write_bytes(content)
    logger.info("photo_saved", filename=filename, size=len(content))
    return f"{URL_PREFIX}{filename}"


def photo_path(photo_url: str, upload_dir: str) -> Path | None:
    if not photo_url.startswith(URL_PREFIX):
        return None
    return Path(upload_dir) / Path(photo_url[len(URL_PREFIX):]).name


async def prune_missing_photos(repo: EmployeeRepository, upload_dir: str) -> int:
    """Clear ``photo_url`` on employees whose file no longer exists."""

    cleared = 0
    for employee in await repo.list_all():
        if not employee.photo_url:
            continue
        path = photo_path(employee.photo_url, upload_dir)
        if path is None or not path.exists():
            logger.info(
                "photo_url_cleared",
                employee_code=employee.employee_code,
                photo_url=employee.photo_url,
            )
            await repo.update(employee, photo_url=None)
            cleared += 1
    return cleared
