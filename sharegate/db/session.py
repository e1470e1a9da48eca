"""
Database Session Management
Engine construction and session factories
"""

from typing import Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from sharegate.core.config import settings
from sharegate.core.exceptions import AppException
from sharegate.core.logging import get_logger
from sharegate.db.base import Base

logger = get_logger(__name__)

engine: Optional[AsyncEngine] = None
async_session_maker: Optional[async_sessionmaker[AsyncSession]] = None


def _serialize_sqlite_writers(db_engine: AsyncEngine) -> None:
    """
    Start every SQLite transaction with BEGIN IMMEDIATE

    Without it two connections can both hold read locks and deadlock when
    upgrading to write; with it they queue on the busy timeout instead.
    """

    @event.listens_for(db_engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(db_engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine_for(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine with pool settings suited to the backend"""
    if url.startswith("sqlite"):
        db_engine = create_async_engine(url, echo=echo, poolclass=NullPool)
        _serialize_sqlite_writers(db_engine)
        return db_engine
    return create_async_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


def create_session_maker(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(db_engine: AsyncEngine) -> None:
    """Create all tables (use migrations in production)"""
    # Register models with Base.metadata
    from sharegate.db import models  # noqa: F401

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db(url: Optional[str] = None) -> async_sessionmaker[AsyncSession]:
    """Initialize database engine and session factory"""
    global engine, async_session_maker

    url = url or settings.DB_URL
    logger.info(f"Connecting to database backend {url.split(':', 1)[0]}")

    engine = create_engine_for(url, echo=settings.DEBUG)
    async_session_maker = create_session_maker(engine)

    if settings.ENVIRONMENT in ("development", "test"):
        await create_tables(engine)
        logger.info("Database tables created")

    return async_session_maker


async def close_db() -> None:
    """Close database connections"""
    global engine, async_session_maker

    if engine:
        await engine.dispose()
        engine = None
        async_session_maker = None
        logger.info("Database connection closed")


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Return the initialized session factory"""
    if async_session_maker is None:
        raise AppException("Database not initialized")
    return async_session_maker


async def check_database() -> bool:
    """Check database connectivity"""
    try:
        async with get_session_maker()() as session:
            await session.execute(text("SELECT 1"))
            return True
    except Exception as e:
        logger.warning(f"Database check failed: {e}")
        return False
