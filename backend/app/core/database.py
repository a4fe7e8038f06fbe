"""
CodeSync - Database

Async SQLAlchemy engine and session factory for the `users` and `projects`
tables. Both are created lazily on first use and torn down by close_db(), so a
process (or a test run) can open and close the database more than once.

SQLite files run in WAL mode so the ingestion writer does not block readers
such as projects-list. `:memory:` databases keep their default journal.
"""
import time
from typing import Any, Dict, Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from app.core.config import settings
from app.core.logging_config import logger

Base = declarative_base()

_engine: Optional[AsyncEngine] = None
_async_session_local: Optional[async_sessionmaker[AsyncSession]] = None

# Seconds a SQLite connection waits on a locked database before failing
SQLITE_BUSY_TIMEOUT = 30


def get_database_url() -> str:
    """DATABASE_URL with a plain postgresql:// scheme mapped to asyncpg"""
    db_url = settings.DATABASE_URL
    if db_url.startswith("postgresql://"):
        db_url = db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return db_url


def is_sqlite_file(db_url: str) -> bool:
    return db_url.startswith("sqlite") and ":memory:" not in db_url


def _configure_sqlite(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()


def get_engine() -> AsyncEngine:
    """
    Get or create the engine.

    - SQLite: NullPool, WAL journal for file databases
    - PostgreSQL: default async pool with pre-ping
    """
    global _engine
    if _engine is None:
        db_url = get_database_url()

        if db_url.startswith("sqlite"):
            _engine = create_async_engine(
                db_url,
                echo=settings.DB_ECHO,
                connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT},
                poolclass=NullPool,
            )
            if is_sqlite_file(db_url):
                event.listen(_engine.sync_engine, "connect", _configure_sqlite)
        else:
            _engine = create_async_engine(
                db_url,
                echo=settings.DB_ECHO,
                pool_pre_ping=True,
            )
        logger.debug(f"[Database] Engine created for {_engine.url.render_as_string(hide_password=True)}")
    return _engine


def get_session_local() -> async_sessionmaker[AsyncSession]:
    """Session factory handed to the repositories; objects stay usable after commit"""
    global _async_session_local
    if _async_session_local is None:
        _async_session_local = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False
        )
    return _async_session_local


async def init_db():
    """Create the users and projects tables if they are missing"""
    import app.models  # noqa: F401 - register models on the metadata

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db():
    """Drop every CodeSync table"""
    import app.models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def ping() -> Dict[str, Any]:
    """
    Round-trip a trivial query.

    Returns {"status": "healthy"|"unhealthy", "latency_ms", "connection", "error"?}
    and never raises; the readiness check reports it as-is.
    """
    start = time.perf_counter()
    try:
        async with get_session_local()() as session:
            await session.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            "connection": "ok",
        }
    except Exception as e:
        logger.error(f"[Database] Ping failed: {e}")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            "connection": "failed",
            "error": str(e),
        }


async def close_db():
    """Dispose the engine; the next get_engine() call builds a fresh one"""
    global _engine, _async_session_local
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_local = None
