#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Database engine and session factory.
Uses SQLAlchemy 2.x async API; aiosqlite for the default SQLite file.
Only the SQL-backed variable store needs this module.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from charmscript.core.config import get_settings


# -----------------------------------------------------------------------------

class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""
    pass


# -----------------------------------------------------------------------------

def build_engine(url: str | None = None) -> AsyncEngine:
    settings = get_settings()
    db_url = url or settings.database_url
    options: dict = {"echo": settings.db_echo}
    url_info = make_url(db_url)
    if url_info.get_backend_name() == "sqlite":
        if url_info.database and url_info.database != ":memory:":
            Path(url_info.database).parent.mkdir(parents=True, exist_ok=True)
    else:
        options.update(pool_pre_ping=True, pool_size=10, max_overflow=20)
    return create_async_engine(db_url, **options)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


# -----------------------------------------------------------------------------

async def init_db(engine: AsyncEngine) -> None:
    """Create all tables."""
    from charmscript import models  # noqa: F401  (registers models)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db(engine: AsyncEngine) -> None:
    """Drop all tables (tests only)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# -----------------------------------------------------------------------------
