"""Async engine and session plumbing shared by the API, CLI and migrations."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import TrackerSettings, settings


def build_engine(config: TrackerSettings = settings) -> AsyncEngine:
    options: dict = {"echo": config.echo_sql}
    if not config.is_sqlite:
        # Long-lived PostgreSQL pools drop idle connections.
        options["pool_pre_ping"] = True
    return create_async_engine(config.database_url, **options)


engine = build_engine()
# Snapshots are serialized after commit, so committed rows must stay loaded.
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    """FastAPI dependency: one session per request."""
    async with async_session_factory() as session:
        yield session


async def create_all() -> None:
    """Create tables straight from model metadata (SQLite / local dev only)."""
    from .models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    await engine.dispose()
