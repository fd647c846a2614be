"""Database connection management for Solarcrew.

This module provides factory functions for creating SQLAlchemy async engines
and session factories, configured from the application's DatabaseConfig.

Production uses asyncpg with connection pooling; SQLite URLs (aiosqlite) are
accepted for local development and tests and skip the pool settings, which
SQLite's pool classes do not take.

Example usage:
    >>> from solarcrew.config import DatabaseConfig
    >>> from solarcrew.database.connection import get_engine, get_session_factory
    >>>
    >>> engine = get_engine(DatabaseConfig(url="postgresql+asyncpg://localhost/solarcrew"))
    >>> SessionFactory = get_session_factory(engine)
    >>>
    >>> async with SessionFactory() as session:
    ...     result = await session.execute(select(Project))
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from solarcrew.config import DatabaseConfig


def is_sqlite_url(url: str) -> bool:
    """Whether a database URL targets SQLite, with or without a driver suffix."""
    return url.split(":", 1)[0].split("+", 1)[0] == "sqlite"


def get_engine(config: DatabaseConfig) -> AsyncEngine:
    """Create an async SQLAlchemy engine from database configuration.

    Args:
        config: Database configuration containing URL, pool settings,
                and SQL echo preference.

    Returns:
        Configured AsyncEngine instance.
    """
    kwargs: dict[str, Any] = {"echo": config.echo}
    if not is_sqlite_url(config.url):
        kwargs["pool_size"] = config.pool_size
        kwargs["max_overflow"] = config.max_overflow

    return create_async_engine(config.url, **kwargs)


def get_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the given engine.

    Sessions use expire_on_commit=False so records returned by the workflow
    can be read after their transaction commits without lazy loads.

    Args:
        engine: AsyncEngine to bind sessions to.

    Returns:
        Configured async_sessionmaker that produces AsyncSession instances.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
