"""Alembic migrations against the same database the service uses."""
from __future__ import annotations

import asyncio
import logging
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import pool

from trustpass import models
from trustpass.config import get_settings
from trustpass.database import build_engine

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

# backend/.env, for runs started outside the backend directory
load_dotenv(Path(__file__).resolve().parents[1] / ".env")
database_url = get_settings().database_url
logger.info("Migrating %s", database_url.split("@")[-1])

target_metadata = models.Base.metadata


def run_migrations_offline() -> None:
    """Emit SQL without connecting."""

    context.configure(
        url=database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        render_as_batch=database_url.startswith("sqlite"),
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=connection.dialect.name == "sqlite",
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    connectable = build_engine(database_url, poolclass=pool.NullPool)
    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
