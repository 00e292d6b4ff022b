"""
Async database session management.
Challenge: Connection pooling, scoped sessions, proper cleanup.
Design: Dependency injection for request-scoped sessions (no connection leaks).
"""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from lendhub.config import get_settings

settings = get_settings()


def enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """
    Let pysqlite/aiosqlite honour SAVEPOINT (used by BatchWriter chunks).
    The driver's own BEGIN handling is disabled and SQLAlchemy emits BEGIN itself.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(url: str, **kwargs) -> AsyncEngine:
    """Create the async engine; SQLite gets savepoint support, servers get a sized pool."""
    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=settings.debug, **kwargs)
        enable_sqlite_savepoints(engine)
        return engine
    return create_async_engine(
        url,
        echo=settings.debug,
        pool_pre_ping=True,  # Verify connections before use
        pool_size=10,
        max_overflow=20,
        **kwargs,
    )


# Async engine with connection pool (scalability)
engine = build_engine(settings.database_url)

# Session factory: one session per request
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session per request. Ensures rollback on error, close on exit."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# Type alias for FastAPI dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db)]
