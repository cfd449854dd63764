"""Async engine and session factory shared by the app, the scheduler and Alembic."""
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import get_settings


def engine_options(database_url: str) -> dict[str, Any]:
    """Driver specific keyword arguments for ``create_async_engine``."""

    if database_url.startswith("sqlite+"):
        # Requests and the scheduler task share pooled connections
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


def build_engine(database_url: str, **overrides: Any) -> AsyncEngine:
    options = engine_options(database_url)
    options.update(overrides)
    return create_async_engine(database_url, **options)


engine = build_engine(get_settings().database_url)
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield one session per request; it is closed when the request ends."""

    async with AsyncSessionLocal() as session:
        yield session
