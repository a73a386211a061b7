import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, AsyncIterator

import sqlalchemy as sa
from fastapi import Request
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError, TimeoutError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from mfgops.domain.errors import DomainError, StorageError

# Shared type definition to avoid circular imports - MUST be defined BEFORE Base and models
UUID_TYPE = sa.Uuid(as_uuid=True)

Base = declarative_base()

logger = logging.getLogger(__name__)


class Database:
    """Owns the async engine and session factory for one application instance.

    The engine is created lazily so constructing the handle never opens a
    connection or imports a DBAPI driver.
    """

    def __init__(
        self,
        database_url: str,
        *,
        pool_size: int = 5,
        max_overflow: int = 5,
        pool_timeout_seconds: float = 30.0,
        statement_timeout_ms: int | None = None,
        engine: AsyncEngine | None = None,
    ) -> None:
        self.database_url = database_url
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_timeout_seconds = pool_timeout_seconds
        self.statement_timeout_ms = statement_timeout_ms
        self._engine = engine
        self._session_factory: async_sessionmaker[AsyncSession] | None = None
        if engine is not None:
            _configure_logging(engine)

    @classmethod
    def from_settings(cls, app_settings) -> "Database":
        return cls(
            app_settings.database_url,
            pool_size=app_settings.database_pool_size,
            max_overflow=app_settings.database_max_overflow,
            pool_timeout_seconds=app_settings.database_pool_timeout_seconds,
            statement_timeout_ms=app_settings.database_statement_timeout_ms,
        )

    @classmethod
    def for_engine(cls, engine: AsyncEngine) -> "Database":
        return cls(engine.url.render_as_string(hide_password=False), engine=engine)

    @property
    def is_postgres(self) -> bool:
        return self.database_url.startswith(("postgresql://", "postgresql+"))

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            engine_kwargs: dict[str, Any] = {
                "pool_pre_ping": True,
            }
            if self.is_postgres:
                engine_kwargs.update({
                    "pool_size": self.pool_size,
                    "max_overflow": self.max_overflow,
                    "pool_timeout": self.pool_timeout_seconds,
                })
                if self.statement_timeout_ms:
                    engine_kwargs["connect_args"] = {
                        "options": f"-c statement_timeout={int(self.statement_timeout_ms)}",
                    }
            self._engine = create_async_engine(self.database_url, **engine_kwargs)
            _configure_logging(self._engine)
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                self.engine,
                expire_on_commit=False,
                class_=AsyncSession,
            )
        return self._session_factory

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()


def get_database(request: Request) -> Database:
    database: Database | None = getattr(request.app.state, "database", None)
    if database is None:
        raise RuntimeError("Database handle is not configured on app.state")
    return database


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    database = get_database(request)
    try:
        async with database.session_factory() as session:
            yield session
    except TimeoutError as exc:
        logger.warning("db_pool_timeout", exc_info=exc)
        raise


@asynccontextmanager
async def unit_of_work(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit everything done in the block, or roll all of it back.

    Domain errors and anything else unexpected propagate unchanged after the
    rollback; database failures (including the commit itself) surface as
    StorageError.
    """
    try:
        yield session
        await session.commit()
    except DomainError:
        await session.rollback()
        raise
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.warning(
            "unit_of_work_failed",
            extra={"extra": {"error_type": type(exc).__name__}},
        )
        raise StorageError(detail="Storage failure; the operation was rolled back") from exc
    except BaseException:
        await session.rollback()
        raise


def _configure_logging(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "handle_error")
    def receive_error(context):  # noqa: ANN001
        exc = context.original_exception or context.sqlalchemy_exception
        if isinstance(exc, TimeoutError):
            logger.warning(
                "db_pool_timeout",
                extra={"extra": {"operation": str(context.statement) if context.statement else None}},
            )
