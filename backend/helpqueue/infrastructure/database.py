"""Database Session Manager — async engine and sessions for the queue tables.

Invariants:
    - A session that raises is rolled back before the error leaves session()
    - SQLAlchemy exceptions surface as DatabaseError (core/errors.py), original chained
    - Pool sizing applies to server databases only; SQLite keeps the dialect default pool

Design Decisions:
    - No module-level manager: init_db returns one and QueueCore carries it
    - expire_on_commit=False: committed rows stay readable for change records
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import (
    IntegrityError, OperationalError, DBAPIError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)

from helpqueue.core.errors import DatabaseError

logger = logging.getLogger(__name__)

# first match wins, so subclasses come before their bases
_ERROR_MAP: tuple[tuple[type[SQLAlchemyError], str, str], ...] = (
    (IntegrityError, "Integrity constraint violated", "commit"),
    (OperationalError, "Connection, lock or operational error", "execute"),
    (DBAPIError, "Database driver error", "query"),
    (SQLAlchemyError, "Database operation failed", "unknown"),
)


def engine_options(database_url: str, pool_size: int, max_overflow: int) -> dict:
    """Keyword arguments for create_async_engine."""
    if make_url(database_url).get_backend_name() == "sqlite":
        return {}
    return {
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }


class DatabaseSessionManager:
    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        self.engine = create_async_engine(
            database_url, **engine_options(database_url, pool_size, max_overflow),
        )
        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session that rolls back and maps errors on the way out."""
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            message, operation = next(
                (msg, op) for kind, msg, op in _ERROR_MAP if isinstance(e, kind)
            )
            logger.error(
                f"{type(e).__name__}: {e}", extra={"error_code": "DATABASE_ERROR"},
            )
            raise DatabaseError(message, operation) from e
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """SELECT 1 round trip, for the readiness route."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"DB health check failed: {e}")
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()


def init_db(database_url: str, **kwargs) -> DatabaseSessionManager:
    logger.info(f"Connecting to {make_url(database_url).render_as_string(hide_password=True)}")
    return DatabaseSessionManager(database_url, **kwargs)
