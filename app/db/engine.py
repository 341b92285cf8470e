"""Async SQLAlchemy engine and session factory.

Built from Settings by app.main when DATABASE_URL is configured. Without
it, the app runs on InMemoryUserRepo and none of this is touched.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all table models."""


def build_engine(database_url: str) -> AsyncEngine:
    return create_async_engine(
        database_url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def sync_schema(engine: AsyncEngine, *, force: bool = False) -> None:
    """Create missing tables; with force, drop everything first.

    force=True wipes all users. It exists for resetting a demo database
    (FORCE_DB_SYNC=true) and must stay off anywhere data matters.
    """
    import app.db.tables  # noqa: F401  registers UserRow on Base.metadata

    async with engine.begin() as conn:
        if force:
            logger.warning("FORCE_DB_SYNC enabled, dropping all tables")
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def lifespan_db(
    engine: AsyncEngine | None, *, force_sync: bool = False
) -> AsyncGenerator[None, None]:
    if engine is None:
        logger.info("No DATABASE_URL configured, using in-memory user repository")
        yield
        return

    await sync_schema(engine, force=force_sync)
    logger.info("Database ready: %s", engine.url.render_as_string(hide_password=True))
    try:
        yield
    finally:
        await engine.dispose()
        logger.info("Database engine disposed")
