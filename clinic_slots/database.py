import asyncio
import logging
import os
import time
from functools import wraps

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from .config import DATABASE_URL, DB_CALL_TIMEOUT
from .errors import PersistenceTimeoutError

logger = logging.getLogger(__name__)

# Get environment-specific pool settings
POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "10"))
POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "300"))
ENABLE_QUERY_LOGGING = os.getenv("DB_LOG_SLOW_QUERIES", "true").lower() == "true"
SLOW_QUERY_THRESHOLD = float(os.getenv("DB_SLOW_QUERY_THRESHOLD", "1.0"))

Base = declarative_base()


def build_engine(url: str = DATABASE_URL) -> AsyncEngine:
    """Create the async engine, with pooling only for server databases"""
    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=False)
    else:
        engine = create_async_engine(
            url,
            pool_pre_ping=True,  # Test connections before using
            pool_recycle=POOL_RECYCLE,
            pool_size=POOL_SIZE,
            max_overflow=MAX_OVERFLOW,
            pool_timeout=POOL_TIMEOUT,
            echo=False,
        )
        logger.info(
            f"📊 Connection pool: size={POOL_SIZE}, max_overflow={MAX_OVERFLOW}, timeout={POOL_TIMEOUT}s"
        )

    if ENABLE_QUERY_LOGGING:
        _install_slow_query_logging(engine)

    return engine


def _install_slow_query_logging(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "before_cursor_execute")
    def before_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
        conn.info.setdefault("query_start_time", []).append(time.time())

    @event.listens_for(engine.sync_engine, "after_cursor_execute")
    def after_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
        total = time.time() - conn.info["query_start_time"].pop(-1)
        if total > SLOW_QUERY_THRESHOLD:
            logger.warning(f"🐌 Slow query ({total:.2f}s): {statement[:200]}...")


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, autoflush=False, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    """Create tables if they don't exist"""
    from . import models  # noqa: F401 - register models on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)


def with_db_timeout(func):
    """Bound a repository coroutine by the repository's per-call timeout"""

    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await asyncio.wait_for(func(self, *args, **kwargs), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"⏱️ {func.__qualname__} timed out after {self.timeout}s")
            raise PersistenceTimeoutError(
                f"{func.__qualname__} timed out after {self.timeout}s"
            ) from e

    return wrapper


class BaseRepository:
    """Repository bound to a session factory; every call opens its own session"""

    def __init__(self, session_factory: async_sessionmaker, timeout: float = DB_CALL_TIMEOUT):
        self.session_factory = session_factory
        self.timeout = timeout
