"""
Database Configuration and Session Management
"""

from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy import event, text
import structlog

from inventory_api.core.config import settings, DATABASE_CONFIG

logger = structlog.get_logger()

# Create declarative base
Base = declarative_base()


def normalize_database_url(database_url: str) -> str:
    """Pick the async driver for plain PostgreSQL / SQLite URLs"""
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return database_url


def build_engine(database_url: str = None, **overrides) -> AsyncEngine:
    """
    Create the async engine

    Pool sizing only applies to server databases; SQLite keeps the
    dialect's default pool.
    """
    url = normalize_database_url(database_url or settings.DATABASE_URL)
    engine_kwargs = {"echo": settings.ENVIRONMENT == "development" and settings.DEBUG}

    if not url.startswith("sqlite"):
        engine_kwargs.update(DATABASE_CONFIG)
    if url.startswith("postgresql"):
        engine_kwargs["connect_args"] = {
            "server_settings": {"application_name": settings.SERVICE_NAME},
        }
    engine_kwargs.update(overrides)

    engine = create_async_engine(url, **engine_kwargs)
    _attach_pool_listeners(engine)
    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def _attach_pool_listeners(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "checkout")
    def receive_checkout(dbapi_connection, connection_record, connection_proxy):
        """Log connection checkout for monitoring"""
        logger.debug("Database connection checked out", connection_id=id(dbapi_connection))

    @event.listens_for(engine.sync_engine, "checkin")
    def receive_checkin(dbapi_connection, connection_record):
        """Log connection checkin for monitoring"""
        logger.debug("Database connection checked in", connection_id=id(dbapi_connection))


# Database dependency for FastAPI
async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """
    Request-scoped session from the application's service container.
    Commits when the handler succeeds, rolls back otherwise.
    """
    session_factory = request.app.state.container.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def check_database_health(engine: AsyncEngine) -> bool:
    """
    Check database connectivity
    Used by health check endpoints
    """
    try:
        async with engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            return result.scalar() == 1
    except Exception as e:
        logger.error("Database health check failed", error=str(e))
        return False


async def init_database(engine: AsyncEngine):
    """
    Create tables for every registered model
    Called during application startup
    """
    try:
        async with engine.begin() as conn:
            # Import all models to ensure they're registered
            from inventory_api import models  # noqa: F401

            await conn.run_sync(Base.metadata.create_all)

        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error("Database initialization failed", error=str(e))
        raise
