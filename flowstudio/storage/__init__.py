"""Engine and session factory for the flow store.

One lazily created async engine per process, shared by the persistence
gateway, the API and the CLI. Tests build their own with
``make_session_factory``. Uses asyncpg for PostgreSQL and aiosqlite for local SQLite files.

Thread-safety: singleton access is protected by a threading.RLock because
get_session_factory() calls get_engine() while holding the lock.
"""

import threading
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from flowstudio.exceptions import ConfigurationError
from flowstudio.settings import Settings, get_settings

# Created on first use, reset by close_db()
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None
_init_lock = threading.RLock()


def _engine_options(settings: Settings) -> dict[str, Any]:
    """Pool options for the configured backend.

    SQLite pools reject sizing arguments, so they are only passed for PostgreSQL.

    Raises:
        ConfigurationError: If the URL is neither PostgreSQL nor SQLite.
    """
    if not (settings.is_postgres or settings.database_url.startswith("sqlite")):
        scheme = settings.database_url.split(":", 1)[0]
        raise ConfigurationError(f"Unsupported database backend: {scheme}")
    options: dict[str, Any] = {"echo": settings.debug}
    if settings.is_postgres:
        options.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_pool_timeout,
            pool_recycle=settings.database_pool_recycle,
            pool_pre_ping=True,
        )
    return options


def get_engine(settings: Settings | None = None) -> AsyncEngine:
    """Return the process-wide engine, creating it on first call.

    Double-checked under ``_init_lock`` so concurrent first calls build one engine.

    Args:
        settings: Optional settings override. Uses get_settings() if not provided.

    Returns:
        Configured AsyncEngine instance.
    """
    global _engine

    if _engine is None:
        with _init_lock:
            if _engine is None:
                settings = settings or get_settings()
                _engine = create_async_engine(settings.database_url, **_engine_options(settings))

    return _engine


def get_session_factory(settings: Settings | None = None) -> async_sessionmaker[AsyncSession]:
    """Return the process-wide session factory bound to ``get_engine()``.

    Args:
        settings: Optional settings override. Uses get_settings() if not provided.

    Returns:
        Configured async_sessionmaker instance.
    """
    global _session_factory

    if _session_factory is None:
        with _init_lock:
            if _session_factory is None:
                _session_factory = make_session_factory(get_engine(settings))

    return _session_factory


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build a session factory bound to ``engine`` with the project defaults."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db() -> None:
    """Open one connection to fail fast on a bad DATABASE_URL.

    Called from the API lifespan outside tests.
    """
    engine = get_engine()
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def create_schema(engine: AsyncEngine | None = None) -> None:
    """Create all tables known to the declarative Base.

    Intended for local SQLite databases and tests; PostgreSQL deployments
    use the Alembic migrations.
    """
    from flowstudio.storage import entities  # noqa: F401  (register mappers)
    from flowstudio.storage.models import Base

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose the engine and forget both singletons.

    Call this at application shutdown. Acquires the lock before resetting singletons.
    """
    global _engine, _session_factory

    with _init_lock:
        if _engine is not None:
            await _engine.dispose()
            _engine = None
            _session_factory = None


__all__ = [
    "close_db",
    "create_schema",
    "get_engine",
    "get_session_factory",
    "init_db",
    "make_session_factory",
]
