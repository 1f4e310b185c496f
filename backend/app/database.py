"""
Inkwell Backend - Database Engine & Sessions
==============================================

What:  Async SQLAlchemy engine, session factory and declarative base.
How:   Creates an async engine with connection pooling. The SQL stores open
       one short-lived session per write, so every mutation (account update,
       ledger append, transaction insert) commits on its own.
Who:   Used by app.repositories.sql, the health route and Alembic.
When:  Engine is created at module import; sessions are created per operation.

Connection Pooling Strategy:
    pool_size=20:     Persistent connections for normal load
    max_overflow=10:  Temporary connections for traffic spikes (total max = 30)
    pool_pre_ping:    Validates connections before use
    pool_recycle=3600: Recycles connections every hour
"""

from typing import Any, Dict

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import Settings, settings


def build_engine(config: Settings) -> AsyncEngine:
    """
    Create an async engine for the configured URL.

    SQLite (used in tests and local demos) does not take the queue-pool
    sizing arguments, so they are only passed to server databases.
    """
    kwargs: Dict[str, Any] = {"echo": config.log_level == "DEBUG"}
    if not config.database_url.startswith("sqlite"):
        kwargs.update(
            pool_size=config.db_pool_size,
            max_overflow=config.db_max_overflow,
            pool_pre_ping=config.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return create_async_engine(config.database_url, **kwargs)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: rows stay readable after the write commits
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


# ── Engine Configuration ──────────────────────────────────────────────────
engine = build_engine(settings)

# ── Session Factory ───────────────────────────────────────────────────────
async_session_factory = build_session_factory(engine)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class to register with the shared metadata
    used by Alembic and by `create_tables()`.
    """
    pass


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def create_tables(bind: AsyncEngine = engine) -> None:
    """
    What:  Issues CREATE TABLE IF NOT EXISTS for every registered model.
    When:  Startup, when DB_CREATE_TABLES is on; tests against SQLite.
    """
    # Registers the model classes on Base.metadata
    from app.models import account, transaction, usage_event  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine(bind: AsyncEngine = engine) -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await bind.dispose()
