"""Reusable FastAPI dependencies."""
from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from typing import Any, Dict

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from .config import Settings, get_settings
from .database import get_session
from .models import AdminUser
from .schemas import TokenData
from .services.mailer import Mailer, SmtpMailer

# Load settings once
settings = get_settings()

# Use simple Bearer auth instead of OAuth2 password flow
bearer_scheme = HTTPBearer(auto_error=False)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that yields an AsyncSession."""
    async for session in get_session():
        yield session


def get_app_settings() -> Settings:
    return get_settings()


def get_mailer() -> Mailer:
    """Email transport used by request handlers; overridden in tests."""
    return SmtpMailer(get_settings())


async def get_current_admin(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_db_session),
) -> AdminUser:
    """
    Return the authenticated administrator from a JWT access token
    taken from the Authorization: Bearer <token> header.
    """

    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )

    try:
        token_data = decode_access_token(credentials.credentials)
    except jwt.PyJWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from exc

    admin = await session.get(AdminUser, token_data.admin_id)
    if admin is None or admin.email != token_data.email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown administrator",
        )

    return admin


def decode_access_token(token: str) -> TokenData:
    """Decode a JWT access token and return its payload."""

    payload: Dict[str, Any] = jwt.decode(
        token,
        settings.secret_key,
        algorithms=["HS256"],
    )
    return TokenData(**payload)


def token_payload(admin: AdminUser) -> dict[str, Any]:
    """
    Generate the JWT payload for a given administrator.

    auth.login() will add "exp" on top of this.
    """
    return {
        "admin_id": admin.id,
        "email": admin.email,
        "iat": int(datetime.now(timezone.utc).timestamp()),
    }
