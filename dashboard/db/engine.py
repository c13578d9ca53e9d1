"""Async SQLAlchemy engine for the snapshot document table.

Only built when DATABASE_URL is set; otherwise ``engine`` and
``async_session_factory`` are None and api/dependencies.py hands out the
in-memory snapshot store instead.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from dashboard.core.config import SETTINGS

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


if SETTINGS.database_url:
    # one document row per request; a small pool is plenty
    engine = create_async_engine(SETTINGS.database_url, pool_size=5, max_overflow=5)
    async_session_factory: async_sessionmaker[AsyncSession] | None = (
        async_sessionmaker(engine, expire_on_commit=False)
    )
else:
    engine = None
    async_session_factory = None


@asynccontextmanager
async def lifespan_db() -> AsyncGenerator[None, None]:
    """Probe the database on startup and dispose the pool on shutdown.

    A failed probe is logged, not raised: /ready reports the outage.
    """
    if engine is None:
        logger.info("No DATABASE_URL configured; snapshots are kept in memory")
        yield
        return

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Snapshot database reachable: %s", engine.url.render_as_string())
    except Exception:
        logger.exception("Snapshot database unreachable on startup")

    yield

    await engine.dispose()
    logger.info("Database engine disposed")
