"""
Murmur Backend — Database Handle & Session Management
======================================================

What:  The `Database` handle (async engine + session factory), the declarative
       Base, and the FastAPI dependency that hands one session to each request.
Why:   Services never reach for a module-level connection. The handle is
       created in the application lifespan, stored on `app.state`, and
       disposed at shutdown, so tests can swap it out or override the
       dependency entirely.
How:   Each request gets its own AsyncSession; the dependency commits on
       success and rolls back on any error, so a failed request never leaves
       half of its writes behind.

Connection Pooling Strategy (PostgreSQL):
    pool_size / max_overflow:  From settings (default 20 + 10)
    pool_pre_ping:             Validates connections before use
    pool_recycle=3600:         Recycles connections every hour
    pool_timeout:              Bounded wait for a free connection
    command_timeout:           asyncpg per-statement timeout
"""

from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from murmur.config import Settings, settings as default_settings
from murmur.services.store import store_operation


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class so they share one metadata object,
    which Alembic and the test fixtures use to create the schema.
    """
    pass


def engine_options(config: Settings) -> Dict[str, Any]:
    """
    Build create_async_engine() keyword arguments for the configured backend.

    Why conditional: SQLite (used in tests and local experiments) does not
    accept QueuePool sizing arguments or asyncpg's command_timeout.
    """
    options: Dict[str, Any] = {"echo": config.log_level == "DEBUG"}
    if config.is_sqlite:
        options["connect_args"] = {"timeout": config.db_operation_timeout}
        return options

    options.update(
        pool_size=config.db_pool_size,
        max_overflow=config.db_max_overflow,
        pool_pre_ping=config.db_pool_pre_ping,
        pool_recycle=3600,
        pool_timeout=config.db_pool_timeout,
    )
    if config.database_url.startswith("postgresql+asyncpg"):
        options["connect_args"] = {"command_timeout": config.db_operation_timeout}
    return options


class Database:
    """
    Owns the async engine and session factory for one database.

    Lifecycle:
        open:   Database(url) — in the lifespan startup
        use:    async with database.session() as session
        close:  await database.dispose() — in the lifespan shutdown
    """

    def __init__(
        self,
        url: Optional[str] = None,
        engine: Optional[AsyncEngine] = None,
        config: Settings = default_settings,
    ):
        if engine is None:
            engine = create_async_engine(url or config.database_url, **engine_options(config))
        self.engine = engine
        # expire_on_commit=False: response models are built from ORM objects
        # after the flush; attribute access must not trigger a lazy reload
        self.session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def session(self) -> AsyncSession:
        return self.session_factory()

    async def create_all(self) -> None:
        """Create every table known to Base.metadata (tests and local dev only)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> bool:
        """Run SELECT 1; returns False instead of raising when unreachable."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception:
            return False

    async def dispose(self) -> None:
        """Close all pooled connections (called at shutdown)."""
        await self.engine.dispose()


# ── Session Dependency ────────────────────────────────────────────────────
@store_operation("commit")
async def commit_session(session: AsyncSession) -> None:
    """Commit the request's unit of work under the store timeout and error mapping."""
    await session.commit()


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Takes the Database handle opened by the lifespan (app.state.database)
        2. Yields a fresh session to the route handler
        3. On success: commits (all writes of the request become visible at once)
        4. On error: rolls back (no partial mutation is ever observable)
        5. Always: closes the session (returns the connection to the pool)

    Routes declare it with scope="function" so the commit finishes before the
    response is sent; a failed commit becomes a 500 transient_error instead
    of a success the store never recorded.

    Example usage in a route:
        @router.get("/notes")
        async def list_notes(db: AsyncSession = Depends(get_db_session, scope="function")):
            ...
    """
    database: Database = request.app.state.database
    async with database.session() as session:
        try:
            yield session
            await commit_session(session)
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
