from contextlib import asynccontextmanager
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from typing import Any, AsyncGenerator, AsyncIterator, Dict, Optional, Tuple

from prepx.core.config import settings

Base = declarative_base()

# Created on first use so importing models never opens a connection
_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None

ASYNC_DRIVERS = {
    "postgresql://": "postgresql+asyncpg://",
    "postgres://": "postgresql+asyncpg://",
    "sqlite://": "sqlite+aiosqlite://",
}


def get_database_url() -> str:
    """DATABASE_URL rewritten to its async driver (Heroku/Supabase style URLs included)"""
    db_url = settings.DATABASE_URL
    for prefix, async_prefix in ASYNC_DRIVERS.items():
        if db_url.startswith(prefix):
            return async_prefix + db_url[len(prefix):]
    return db_url


def engine_options(db_url: str) -> Dict[str, Any]:
    """
    Pooling per backend.

    - SQLite (tests, local): NullPool, one connection per session
    - PostgreSQL in development: NullPool
    - PostgreSQL in production: QueuePool sized from the DB_POOL_* settings
    """
    options: Dict[str, Any] = {"echo": settings.DB_ECHO}
    if db_url.startswith("sqlite"):
        options.update(connect_args={"check_same_thread": False}, poolclass=NullPool)
    elif settings.DEBUG or settings.ENVIRONMENT == "development":
        options.update(poolclass=NullPool)
    else:
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
            pool_pre_ping=True,
        )
    return options


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        db_url = get_database_url()
        _engine = create_async_engine(db_url, **engine_options(db_url))
    return _engine


def get_session_local() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        # expire_on_commit=False: services serialize rows after committing
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; flushes leftover changes and rolls back on error"""
    async with get_session_local()() as session:
        try:
            yield session
            if session.new or session.dirty or session.deleted:
                await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def background_session() -> AsyncIterator[AsyncSession]:
    """
    Session for work scheduled with BackgroundTasks.

    The request session is closed by the time a background task runs, so
    clone processing and the documentary pipeline open their own.
    """
    async with get_session_local()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def ping() -> Tuple[bool, bool]:
    """(connected, tables_ready) for the readiness probe; raises when the database is unreachable"""
    async with get_session_local()() as session:
        await session.execute(text("SELECT 1"))
        try:
            await session.execute(text("SELECT COUNT(*) FROM users"))
        except Exception:
            return True, False
    return True, True


async def init_db():
    """Create all tables"""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
