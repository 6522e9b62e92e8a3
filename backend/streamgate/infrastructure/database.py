"""Database Session Manager — async connection pool, startup connector, and FastAPI dependency.

Invariants:
    - Every session auto-rolls-back on exception (no partial commits leak)
    - Connection pool uses pool_pre_ping for stale connection detection
    - All SQLAlchemy exceptions mapped to DatabaseError (core/errors.py)
    - DatabaseConnector.connect() returns only after a successful SELECT 1,
      otherwise raises StorageConnectionError and disposes the engine
    - Connect attempts are bounded by a retry count AND an overall deadline

Design Decisions:
    - No module-level singleton: the handle lives on app.state.context and
      get_db reads it from the request
    - expire_on_commit=False: prevents lazy-load issues in async context
    - Pool sizing only passed for server databases (SQLite pools reject it)
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Callable

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.exc import (
    IntegrityError, OperationalError, DBAPIError, SQLAlchemyError,
)
from sqlalchemy import text

from streamgate.core.backoff import backoff_delay_ms
from streamgate.core.errors import DatabaseError, StorageConnectionError

logger = logging.getLogger(__name__)


class DatabaseSessionManager:
    """Manages async database sessions with pooling, rollback, and health checks."""

    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        engine_kwargs: dict = {"pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_recycle=3600,
            )
        self.engine = create_async_engine(database_url, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @property
    def label(self) -> str:
        return self.engine.url.render_as_string(hide_password=True)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide session with auto-rollback on exception."""
        session = self._session_factory()
        try:
            yield session
        except IntegrityError as e:
            await session.rollback()
            logger.error(f"DB integrity error: {e}")
            raise DatabaseError("Integrity constraint violated", "commit")
        except OperationalError as e:
            await session.rollback()
            logger.error(f"DB operational error: {e}")
            raise DatabaseError("Connection or operational error", "execute")
        except DBAPIError as e:
            await session.rollback()
            logger.error(f"DB driver error: {e}")
            raise DatabaseError("Database driver error", "query")
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"SQLAlchemy error: {e}")
            raise DatabaseError("Database operation failed", "unknown")
        finally:
            await session.close()

    async def ping(self) -> None:
        """Run SELECT 1 on a raw connection. Raises SQLAlchemy/driver errors."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def health_check(self) -> bool:
        """Check database connectivity (for readiness checks)."""
        try:
            await self.ping()
            return True
        except Exception as e:
            logger.error(f"DB health check failed: {e}")
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()


class DatabaseConnector:
    """Storage connector: builds the session manager and waits until it answers."""

    def __init__(
        self,
        database_url: str,
        *,
        pool_size: int = 20,
        max_overflow: int = 10,
        retries: int = 5,
        base_delay_ms: int = 500,
        max_delay_ms: int = 10_000,
        deadline_seconds: float = 60.0,
        manager_factory: Callable[..., DatabaseSessionManager] = DatabaseSessionManager,
    ):
        self.database_url = database_url
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.retries = retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self.deadline_seconds = deadline_seconds
        self._manager_factory = manager_factory
        self.attempts = 0

    async def connect(self) -> DatabaseSessionManager:
        manager = self._manager_factory(
            self.database_url,
            pool_size=self.pool_size,
            max_overflow=self.max_overflow,
        )
        try:
            await asyncio.wait_for(
                self._ping_with_retry(manager), timeout=self.deadline_seconds,
            )
        except asyncio.TimeoutError:
            await manager.dispose()
            raise StorageConnectionError(
                f"deadline of {self.deadline_seconds}s exceeded", self.attempts,
            )
        except StorageConnectionError:
            await manager.dispose()
            raise
        logger.info(
            f"Storage connected: {manager.label}",
            extra={"attempt": self.attempts},
        )
        return manager

    async def _ping_with_retry(self, manager: DatabaseSessionManager) -> None:
        for attempt in range(self.retries + 1):
            self.attempts = attempt + 1
            try:
                await manager.ping()
                return
            except (SQLAlchemyError, OSError) as e:
                if attempt >= self.retries:
                    raise StorageConnectionError(str(e), self.attempts)
                delay = backoff_delay_ms(
                    attempt, self.base_delay_ms, self.max_delay_ms,
                )
                logger.warning(
                    f"Storage not ready, retry after {delay}ms: {e}",
                    extra={"attempt": self.attempts, "delay_ms": delay},
                )
                await asyncio.sleep(delay / 1000)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions."""
    storage = request.app.state.context.storage
    async with storage.session() as session:
        yield session
