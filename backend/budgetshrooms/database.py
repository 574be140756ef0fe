import logging
from collections.abc import AsyncIterator

from fastapi import HTTPException
from psycopg import AsyncConnection
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from .config import settings

logger = logging.getLogger(__name__)

# Opened by the app lifespan; None until then or when no DATABASE_URL is set.
pool: AsyncConnectionPool | None = None


def _build_pool() -> AsyncConnectionPool:
    # Service calls are single statements; autocommit with dict rows.
    return AsyncConnectionPool(
        conninfo=settings.database_url,
        open=False,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        kwargs={"autocommit": True, "row_factory": dict_row},
    )


async def init_db_pool() -> None:
    global pool

    if not settings.database_url:
        logger.warning("DATABASE_URL is not set; session and expense routes will answer 500")
        return

    pool = _build_pool()
    await pool.open()
    logger.info("Database pool opened (max %d connections)", settings.db_pool_max_size)


async def close_db_pool() -> None:
    global pool

    if pool is None:
        return

    await pool.close()
    pool = None
    logger.info("Database pool closed")


async def get_db_connection() -> AsyncIterator[AsyncConnection]:
    """Lend one pooled connection for the lifetime of a request."""
    if pool is None:
        raise HTTPException(status_code=500, detail="DATABASE_URL is not configured")

    async with pool.connection() as connection:
        yield connection
