"""Alembic environment for the crewhours schema (async engine)."""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine

from crewhours.config import Settings
from crewhours.database import Base

import crewhours.auth.models  # noqa: F401
import crewhours.profiles.models  # noqa: F401
import crewhours.projects.models  # noqa: F401
import crewhours.records.models  # noqa: F401
import crewhours.closings.models  # noqa: F401
import crewhours.invoicing.models  # noqa: F401
import crewhours.advances.models  # noqa: F401
import crewhours.sanctions.models  # noqa: F401
import crewhours.accommodations.models  # noqa: F401
import crewhours.company.models  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

settings = Settings()
target_metadata = Base.metadata


def _configure(**kwargs) -> None:
    # SQLite cannot ALTER most constraints in place; batch mode recreates the table.
    context.configure(
        target_metadata=target_metadata,
        render_as_batch=settings.is_sqlite,
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(
        url=settings.database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    connectable = create_async_engine(settings.database_url, poolclass=pool.NullPool)
    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
