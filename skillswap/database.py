"""Database handle and session management using SQLAlchemy async ORM"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator, AsyncIterator, Optional

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from skillswap import config

logger = logging.getLogger(__name__)

# Base class for declarative models
Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection"""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Shared persistence handle.

    Owns the async engine and session factory. One instance is created by the
    process entry point (FastAPI lifespan, scripts, test fixtures) and passed
    explicitly to whatever needs it.
    """

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None):
        self.url = url or config.DATABASE_URL
        echo = config.DB_ECHO if echo is None else echo

        if self.url.startswith("sqlite"):
            engine_kwargs = {"echo": echo}
            if ":memory:" in self.url or self.url.endswith("sqlite+aiosqlite://"):
                # Single shared connection so every session sees the same in-memory database
                engine_kwargs.update(
                    poolclass=StaticPool,
                    connect_args={"check_same_thread": False},
                )
            self.engine: AsyncEngine = create_async_engine(self.url, **engine_kwargs)
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        else:
            # pool_size=20: Keep 20 connections alive in the pool
            # max_overflow=30: Allow 30 additional connections under load
            # pool_recycle=3600: Recycle connections every hour
            self.engine = create_async_engine(
                self.url,
                echo=echo,
                pool_size=config.DB_POOL_SIZE,
                max_overflow=config.DB_MAX_OVERFLOW,
                pool_recycle=config.DB_POOL_RECYCLE,
                pool_pre_ping=True,
            )

        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def create_all(self):
        """Create all tables (development and tests; production uses Alembic)"""
        import skillswap.models  # noqa: F401  register mappers

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema created/verified")

    async def drop_all(self):
        import skillswap.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self):
        await self.engine.dispose()
        logger.info("Database connections closed")

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """
        Yield a session wrapped in a single transactional unit.

        Commits when the caller finishes without error, rolls back otherwise.
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for FastAPI endpoints to get a database session.

    Declare it with scope="function" so the commit runs before the response
    is sent and a failed commit still reaches the exception handlers.

    Usage in FastAPI:
        @router.get("/items")
        async def read_items(db: AsyncSession = Depends(get_db, scope="function")):
            result = await db.execute(select(Item))
            return result.scalars().all()
    """
    database: Database = request.app.state.db
    async with database.transaction() as session:
        yield session


def utcnow() -> datetime:
    """Timezone-aware current time used for every timestamp column"""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)"""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
