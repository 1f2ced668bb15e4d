"""
Alembic environment
Runs migrations over the application's async engine
"""

import asyncio

from alembic import context

from inventory_api import models  # noqa: F401
from inventory_api.core.database import Base, build_engine

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    from inventory_api.core.config import settings
    from inventory_api.core.database import normalize_database_url

    context.configure(
        url=normalize_database_url(settings.DATABASE_URL),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = build_engine()
    async with engine.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
