"""
Database manager for agentrelay.

This module provides a centralized database connection manager
that avoids global state and can be instantiated per process or per job.
"""

import json
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from ..settings import settings
from ..utils.logger import logger


def _pydantic_json_serializer(obj: Any) -> str:
    """JSON serializer that handles Pydantic/SQLModel objects in JSON columns."""

    def default(o: Any) -> Any:
        if hasattr(o, "model_dump"):
            return o.model_dump(mode="json", by_alias=True)
        raise TypeError(f"Object of type {type(o).__name__} is not JSON serializable")

    return json.dumps(obj, default=default)


class DatabaseManager:
    """
    Manages database connections and sessions without global state.

    The engine is created lazily on first use. Celery workers create one manager
    per job because an async engine cannot be shared across event loops.

    Args:
        url: Async database URL. Defaults to ``settings.async_database_url``.
        echo: Whether SQLAlchemy should echo statements.
    """

    def __init__(self, url: str | None = None, echo: bool | None = None) -> None:
        self._url = url or settings.async_database_url
        self._echo = settings.debug if echo is None else echo
        self._async_engine: AsyncEngine | None = None
        self._async_session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def url(self) -> str:
        """Async database URL this manager connects to."""
        return self._url

    def _create_async_engine(self) -> AsyncEngine:
        """Create and configure the asynchronous database engine."""
        if self._url.startswith("sqlite"):
            in_memory = ":memory:" in self._url
            engine = create_async_engine(
                self._url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool if in_memory else None,
                echo=self._echo,
                json_serializer=_pydantic_json_serializer,
            )
        else:
            engine = create_async_engine(
                self._url,
                echo=self._echo,
                pool_size=20,
                max_overflow=0,
                json_serializer=_pydantic_json_serializer,
            )

        logger.debug(f"Async database engine created: {self._url}")
        return engine

    @property
    def async_engine(self) -> AsyncEngine:
        """Get or create the asynchronous database engine."""
        if self._async_engine is None:
            self._async_engine = self._create_async_engine()
        return self._async_engine

    @property
    def async_session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Get or create the async session factory."""
        if self._async_session_factory is None:
            self._async_session_factory = async_sessionmaker(
                self.async_engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
        return self._async_session_factory

    async def create_db_and_tables_async(self) -> None:
        """Create database tables asynchronously."""
        # Make sure every table is registered on the metadata
        from .. import models  # noqa: F401

        logger.info("Creating database tables (async)...")
        async with self.async_engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.info("Database tables created (async)")

    @asynccontextmanager
    async def get_async_session_context(self) -> AsyncGenerator[AsyncSession]:
        """
        Get an async database session as a context manager.

        Usage:
            async with db_manager.get_async_session_context() as session:
                session.add(model_instance)
                await session.commit()

        Yields:
            AsyncSession: SQLModel async session
        """
        async with self.async_session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                logger.error(f"Database error: {e}")
                await session.rollback()
                raise
            finally:
                await session.close()

    async def get_async_session(self) -> AsyncGenerator[AsyncSession]:
        """
        Get an async database session for FastAPI dependency.

        Yields:
            AsyncSession: SQLModel async session
        """
        async with self.get_async_session_context() as session:
            yield session

    async def close(self) -> None:
        """Close all database connections."""
        if self._async_engine:
            await self._async_engine.dispose()
            self._async_engine = None
            self._async_session_factory = None
            logger.debug("Async database engine disposed")

    def __repr__(self) -> str:
        """String representation of the DatabaseManager."""
        return (
            f"<DatabaseManager("
            f"url={self._url}, "
            f"async_initialized={self._async_engine is not None}"
            f")>"
        )


# Process-wide manager used by the API
db_manager = DatabaseManager()
