"""Authentication routes and helpers."""
from datetime import datetime, timezone

import jwt
import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from passlib.context import CryptContext
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .config import get_settings
from .dependencies import get_current_admin, get_db_session, token_payload
from .models import AdminUser
from .schemas import AdminCreate, AdminLogin, AdminRead, Token, compute_expiry

router = APIRouter(prefix="/auth", tags=["auth"])
logger = structlog.get_logger(__name__)

# Use PBKDF2-SHA256 instead of bcrypt to avoid bcrypt backend issues
password_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
)


def hash_password(password: str) -> str:
    """Hash a password for storage."""
    return password_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain password against the stored hash."""
    return password_context.verify(password, password_hash)


@router.post("/bootstrap", response_model=AdminRead, status_code=status.HTTP_201_CREATED)
async def bootstrap_admin(
    payload: AdminCreate, session: AsyncSession = Depends(get_db_session)
) -> AdminUser:
    """Create the first administrator. Refused once any admin exists."""

    existing = await session.execute(select(func.count()).select_from(AdminUser))
    if existing.scalar_one() > 0:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Admin user already exists",
        )

    admin = AdminUser(
        email=payload.email.lower(),
        password_hash=hash_password(payload.password),
    )
    session.add(admin)
    await session.commit()
    await session.refresh(admin)
    logger.info("admin_bootstrapped", admin_id=admin.id)
    return admin


@router.post("/login", response_model=Token)
async def login(
    payload: AdminLogin, session: AsyncSession = Depends(get_db_session)
) -> Token:
    """Authenticate an administrator and return a JWT access token."""

    settings = get_settings()
    result = await session.execute(
        select(AdminUser).where(AdminUser.email == payload.email.lower())
    )
    admin = result.scalar_one_or_none()
    if admin is None or not verify_password(payload.password, admin.password_hash):
        logger.info("login_failed")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    admin.last_login = datetime.utcnow()
    await session.commit()

    expires_at = compute_expiry(settings.access_token_expires_minutes)
    encoded = jwt.encode(
        {**token_payload(admin), "exp": int(expires_at.replace(tzinfo=timezone.utc).timestamp())},
        settings.secret_key,
        algorithm="HS256",
    )
    logger.info("login_succeeded", admin_id=admin.id)
    return Token(access_token=encoded, expires_at=expires_at)


@router.get("/me", response_model=AdminRead)
async def me(current_admin: AdminUser = Depends(get_current_admin)) -> AdminUser:
    """Return the administrator behind the bearer token."""

    return current_admin
