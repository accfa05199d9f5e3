"""
Database Connection Management

Async SQLAlchemy 2.0 engine and session handling. A ``Database`` instance
is created at application startup and kept on ``app.state``; request
handlers receive sessions through the ``get_db_dependency`` FastAPI
dependency instead of reaching for a module-level engine.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional
import time

import structlog
from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from portal_analytics.config import Settings
from .models import Base

logger = structlog.get_logger(__name__)


class Database:
    """
    Owns one async engine and its session factory.

    Example:
        db = Database("postgresql+asyncpg://...")
        await db.connect()
        async with db.session() as session:
            ...
        await db.dispose()
    """

    def __init__(self, url: str, echo: bool = False, **engine_kwargs: Any):
        engine_config: Dict[str, Any] = {
            "echo": echo,
            "pool_pre_ping": True,  # Verify connections before use
            # asyncpg pools its own connections
            "poolclass": NullPool,
        }
        engine_config.update(engine_kwargs)

        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, **engine_config)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def connect(self) -> None:
        """Verify the database answers; raises on failure"""
        try:
            async with self.engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("Database connection established", url=self.engine.url.render_as_string())
        except Exception as e:
            logger.error("Failed to connect to database", error=str(e))
            raise

    async def create_all(self) -> None:
        """Create tables (local development and tests only)"""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database engine disposed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Session context manager with commit/rollback/close handling.

        Example:
            async with db.session() as session:
                result = await session.execute(query)
        """
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.error("Database session error, rolling back", error=str(e), error_type=type(e).__name__)
            await session.rollback()
            raise
        finally:
            await session.close()

    async def health(self) -> Dict[str, Any]:
        """Health status with latency information"""
        try:
            start = time.perf_counter()
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
            latency_ms = (time.perf_counter() - start) * 1000
            return {"status": "healthy", "latency_ms": round(latency_ms, 2)}
        except Exception as e:
            return {"status": "unhealthy", "error": str(e)}


def create_database(settings: Settings) -> Database:
    """Build a Database from application settings"""
    return Database(settings.database.async_url, echo=settings.database.echo)


def get_database(request: Request) -> Database:
    """FastAPI dependency: the application's Database"""
    database: Optional[Database] = getattr(request.app.state, "database", None)
    if database is None:
        raise RuntimeError("Database not initialized. Set app.state.database at startup.")
    return database


async def get_db_dependency(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions.

    Example:
        @router.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db_dependency)):
            ...
    """
    async with get_database(request).session() as session:
        yield session
