"""
Database Module

Async SQLAlchemy engine and session management.

The engine is owned by a Database object that the application builds
at startup (see carpool.main.lifespan), keeps on `app.state.database`
and disposes at shutdown. Request handlers receive one AsyncSession
per request through the `get_db` dependency.
"""

import asyncio
import logging
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

logger = logging.getLogger(__name__)

# Base class which all database models inherit from
Base = declarative_base()


class Database:
    """Owns the engine and the session factory for one application."""

    def __init__(
        self,
        url: str,
        echo: bool = False,
        pool_size: Optional[int] = None,
        max_overflow: Optional[int] = None,
        **engine_kwargs
    ):
        if pool_size is not None:
            engine_kwargs["pool_size"] = pool_size
        if max_overflow is not None:
            engine_kwargs["max_overflow"] = max_overflow

        self.engine: AsyncEngine = create_async_engine(
            url,
            echo=echo,
            pool_pre_ping=True,
            **engine_kwargs
        )
        # Objects stay usable after commit; repositories refresh explicitly
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def check_connection(self) -> bool:
        """Run a trivial query; True if the database answered."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database connectivity check failed: {e}")
            return False

    async def connect(self, timeout: float) -> None:
        """
        Verify connectivity within `timeout` seconds.

        Raises:
            RuntimeError: if the database is unreachable
        """
        try:
            healthy = await asyncio.wait_for(self.check_connection(), timeout=timeout)
        except asyncio.TimeoutError:
            healthy = False

        if not healthy:
            raise RuntimeError("Could not connect to the database")

        logger.info("Database connection established successfully")

    async def create_all(self) -> None:
        """Create all tables (used by tests and local bootstrap)."""
        # Register every model on Base.metadata
        import carpool.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database engine disposed")


# Dependency to get the database session (used in FastAPI routes)
async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        yield session
