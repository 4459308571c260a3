"""
Database connection and session management for the Supabase Postgres backend.
Uses asyncpg with SQLAlchemy async.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings


def get_database_url(url: Optional[str] = None) -> str:
    """
    Normalize a Supabase connection string for asyncpg.

    Supabase hands out postgres:// or postgresql:// URLs with sslmode
    in the query string; asyncpg wants its own driver prefix and takes
    SSL through connect_args instead.
    """
    url = settings.database_url if url is None else url
    if not url:
        return ""

    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            url = "postgresql+asyncpg://" + url[len(prefix):]
            break

    if "?sslmode=" in url:
        base, _, query = url.partition("?")
        params = [p for p in query.split("&") if not p.startswith("sslmode=")]
        url = base + ("?" + "&".join(params) if params else "")
    elif "&sslmode=" in url:
        url = url.replace("&sslmode=require", "").replace("&sslmode=disable", "")
    return url


def get_connect_args() -> Dict[str, Any]:
    """asyncpg connect args for Supabase."""
    connect_args: Dict[str, Any] = {"ssl": "require"}
    if settings.database_pooler:
        # pgbouncer in transaction mode cannot keep prepared statements
        connect_args["statement_cache_size"] = 0
    return connect_args


def create_engine_if_configured() -> Optional[AsyncEngine]:
    """Create async engine only if DATABASE_URL is configured."""
    db_url = get_database_url()
    if not db_url:
        print("WARNING: DATABASE_URL not configured. Database features disabled.")
        return None

    return create_async_engine(
        db_url,
        echo=settings.debug,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        connect_args=get_connect_args(),
    )


engine = create_engine_if_configured()

async_session_maker = (
    async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    if engine
    else None
)


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session."""
    if not async_session_maker:
        raise RuntimeError("Database not configured. Set DATABASE_URL environment variable.")

    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Context manager for database session (for use outside FastAPI)."""
    if not async_session_maker:
        raise RuntimeError("Database not configured. Set DATABASE_URL environment variable.")

    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def close_db() -> None:
    """Close database connections."""
    if engine:
        await engine.dispose()
