from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncEngine, AsyncSession
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool
from sqlalchemy.exc import OperationalError
from app.core.config import settings
import logging
from typing import AsyncGenerator
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)

Base = declarative_base()


def build_engine(db_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    In-memory SQLite databases live inside a single connection, so every
    session has to share it through a static pool.
    """
    if db_url.startswith("sqlite") and ":memory:" in db_url:
        return create_async_engine(
            db_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )

    # If using postgresql://, convert to postgresql+asyncpg://
    if db_url.startswith("postgresql://"):
        db_url = db_url.replace("postgresql://", "postgresql+asyncpg://")
    elif db_url.startswith("postgres://"):
        db_url = db_url.replace("postgres://", "postgresql+asyncpg://")

    return create_async_engine(db_url, echo=echo, pool_pre_ping=True)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,  # Don't expire objects after commit
        autoflush=False,
    )


try:
    engine = build_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)
    AsyncSessionLocal = build_session_factory(engine)
except OperationalError as e:
    logger.error(f"Failed to create database engine: {e}")
    raise

# Dependency to use in FastAPI endpoints
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides an async database session.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()

# Context manager for use in scripts and startup hooks
@asynccontextmanager
async def get_db_context():
    """
    Context manager for database sessions outside of request handlers.
    """
    session = AsyncSessionLocal()
    try:
        yield session
    finally:
        await session.close()

async def create_tables(bind: AsyncEngine) -> None:
    """
    Create every table registered on the declarative base.
    """
    # Import models so they are registered on Base.metadata
    import app.db.base  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

async def initialize_db():
    """
    Initialize the database schema and verify the connection is working.
    """
    await create_tables(engine)
    logger.info("Database connection initialized successfully")
    return True

async def close_db_connection():
    """
    Close database connection pool.
    """
    await engine.dispose()
    logger.info("Database connection pool closed")
