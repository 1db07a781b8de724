"""
Database Connection Management

Async SQLAlchemy 2.0 engine for the warehouse, table creation and the
full-refresh publisher for built models.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Optional

import structlog
from sqlalchemy import delete, func, select, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from tpch_kimball.config import get_settings
from tpch_kimball.transformation.transformers import ModelBuild
from .models import Base, MODELS_IN_DEPENDENCY_ORDER

logger = structlog.get_logger(__name__)

# Global engine and session factory
_engine: Optional[AsyncEngine] = None
_async_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


async def init_database(url: Optional[str] = None) -> AsyncEngine:
    """
    Initialize the database engine.

    Args:
        url: SQLAlchemy async URL, defaults to the configured warehouse

    Returns:
        AsyncEngine: The initialized database engine
    """
    global _engine, _async_session_factory

    if _engine is not None:
        logger.warning("Database already initialized")
        return _engine

    settings = get_settings()

    # AsyncPG handles its own connection pooling internally
    _engine = create_async_engine(
        url or settings.database.async_url,
        echo=settings.database.echo,
        pool_pre_ping=True,
        poolclass=NullPool,
    )

    _async_session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    # Verify connection
    try:
        async with _engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection established", dialect=_engine.dialect.name)
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
        raise

    return _engine


async def close_database() -> None:
    """Dispose of the engine and its connections"""
    global _engine, _async_session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
        logger.info("Database connection closed")


def get_engine() -> AsyncEngine:
    """
    Get the database engine.

    Raises:
        RuntimeError: If database is not initialized
    """
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _engine


@asynccontextmanager
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Get a database session.

    Context manager that provides a database session and handles
    commit/rollback/close automatically.

    Example:
        async with get_db() as db:
            result = await db.execute(query)
    """
    if _async_session_factory is None:
        logger.error("Database not initialized when get_db() called")
        raise RuntimeError("Database not initialized. Call init_database() first.")

    session = _async_session_factory()
    try:
        yield session
        await session.commit()
    except Exception as e:
        logger.error("Database session error, rolling back", error=str(e), error_type=type(e).__name__)
        await session.rollback()
        raise
    finally:
        await session.close()


async def create_tables() -> None:
    """Create every model table that does not exist yet"""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Warehouse tables ensured", tables=len(Base.metadata.tables))


async def publish_model(build: ModelBuild, chunk_size: Optional[int] = None) -> Dict[str, int]:
    """
    Replace the warehouse contents with a built model.

    Runs in one transaction: every table is emptied facts first, then
    reloaded dimensions first, so readers never see a partial refresh.

    Args:
        build: Completed model build
        chunk_size: Rows per INSERT batch

    Returns:
        Rows inserted per table
    """
    chunk_size = chunk_size or get_settings().database.insert_chunk_size
    inserted: Dict[str, int] = {}

    async with get_engine().begin() as conn:
        for model in reversed(MODELS_IN_DEPENDENCY_ORDER):
            await conn.execute(delete(model.__table__))

        for model in MODELS_IN_DEPENDENCY_ORDER:
            table = model.__table__
            rows = build[table.name].to_dicts()

            for start in range(0, len(rows), chunk_size):
                await conn.execute(table.insert(), rows[start:start + chunk_size])

            inserted[table.name] = len(rows)
            logger.info("Table published", table=table.name, rows=len(rows))

    logger.info("Model published", tables=len(inserted), total_rows=sum(inserted.values()))
    return inserted


async def count_rows() -> Dict[str, int]:
    """Row count of every warehouse table"""
    counts = {}
    async with get_db() as db:
        for model in MODELS_IN_DEPENDENCY_ORDER:
            result = await db.execute(select(func.count()).select_from(model.__table__))
            counts[model.__tablename__] = result.scalar_one()
    return counts
