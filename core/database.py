"""
Database Management and Configuration.

This module builds the asynchronous SQLAlchemy engine used by the SQL storage
provider. Table definitions come from the SQLModel metadata in `core.models`.

Key Components:
- `DATABASE_URL`: Read from the environment. SQLite via `aiosqlite` for
  development, PostgreSQL via `asyncpg` in production. Heroku/Railway style
  `postgres://` URLs are rewritten to the async driver.
- `create_engine_for`: Engine factory with per-backend pool settings.
- `create_session_factory`: `async_sessionmaker` bound to an engine.
- `create_db_and_tables`: Creates all tables at startup.
- `get_database_info`: Diagnostic information for health checks.
"""

import os
import logging
from typing import Any, Dict, Optional
from sqlmodel import SQLModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool

# Registers every table on SQLModel.metadata
import core.models  # noqa: F401

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./ecosnap.db"


def normalize_database_url(url: str) -> str:
    """Point plain PostgreSQL URLs at the asyncpg driver"""
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def get_database_url() -> str:
    return normalize_database_url(os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL))


def create_engine_for(url: Optional[str] = None) -> AsyncEngine:
    """Create async engine based on database type"""
    url = normalize_database_url(url or get_database_url())

    if url.startswith("sqlite"):
        return create_async_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=False,  # Set to True for SQL debugging
            poolclass=AsyncAdaptedQueuePool,
        )

    return create_async_engine(
        url,
        poolclass=AsyncAdaptedQueuePool,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,  # Validate connections before use
        echo=False,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_db_and_tables(engine: AsyncEngine):
    """
    Create all tables.
    Called during application startup.
    """
    try:
        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.info("EcoSnap database tables created successfully")
    except Exception as e:
        logger.error(f"Failed to create EcoSnap database tables: {e}")
        raise


async def get_database_info(engine: AsyncEngine) -> Dict[str, Any]:
    """
    Get basic database information for health checks.
    """
    try:
        async with engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            result.scalar()
            connection_healthy = True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        connection_healthy = False

    url = engine.url
    return {
        "database_url": url.render_as_string(hide_password=True),
        "connection_healthy": connection_healthy,
        "database_type": url.get_backend_name(),
        "engine_info": {
            "pool_size": getattr(engine.pool, "size", lambda: "unknown")(),
            "checked_out": getattr(engine.pool, "checkedout", lambda: "unknown")(),
        },
    }
