"""Database Session Manager: the SQL provider's only path to the database.

Invariants:
    - One short-lived AsyncSession per provider operation; nothing holds a session
      across an await on the change feed or an SSE frame
    - A session that raises is rolled back before the error leaves this module
    - Every SQLAlchemy failure surfaces as DatabaseError, a BackendError, so the view
      model records it as a transient error like any other provider failure

Design Decisions:
    - Singleton db_manager set by the FastAPI lifespan; get_db_manager() fails loudly
      when a route runs before startup
    - expire_on_commit=False: Bookmark.to_row() runs after commit to build the feed payload
    - Pool sizing only for server databases: aiosqlite (tests) uses a static pool
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.exc import (
    IntegrityError, OperationalError, DBAPIError, SQLAlchemyError,
)
from sqlalchemy import text

from app.core.errors import DatabaseError

logger = logging.getLogger(__name__)


def _classify(error: SQLAlchemyError) -> tuple[str, str]:
    """Map a SQLAlchemy failure to a (message, operation) pair, most specific first."""
    if isinstance(error, IntegrityError):
        return "Integrity constraint violated", "commit"
    if isinstance(error, OperationalError):
        return "Connection or operational error", "execute"
    if isinstance(error, DBAPIError):
        return "Database driver error", "query"
    return "Database operation failed", "unknown"


class DatabaseSessionManager:
    """Manages async database sessions with pooling, rollback, and health checks."""

    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        engine_kwargs: dict = {"pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=pool_size, max_overflow=max_overflow, pool_recycle=3600,
            )
        self.engine = create_async_engine(database_url, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide session with auto-rollback on exception."""
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            message, operation = _classify(e)
            logger.error("%s: %s", message, e, extra={"error_code": "DATABASE_ERROR"})
            raise DatabaseError(message, operation) from e
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """Check database connectivity (for readiness probes)."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
            return True
        except (DatabaseError, OSError) as e:
            logger.error("DB health check failed: %s", e)
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()


# Singleton (initialized on startup)
db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs):
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)


def get_db_manager() -> DatabaseSessionManager:
    if not db_manager:
        raise RuntimeError("Database not initialized")
    return db_manager
