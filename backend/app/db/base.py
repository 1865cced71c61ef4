"""SQLAlchemy declarative base plus the process-wide engine and session factory.

Production runs on PostgreSQL through asyncpg; tests and single-user installs
run on a SQLite file through aiosqlite. The two need different engine options,
chosen by ``engine_options`` from the URL's dialect.
"""

from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import Settings, get_settings


class Base(DeclarativeBase):
    pass


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def engine_options(db_url: str, settings: Settings) -> dict[str, Any]:
    """Keyword arguments for create_async_engine for this database URL."""
    options: dict[str, Any] = {"echo": settings.debug}
    if make_url(db_url).get_backend_name() == "sqlite":
        # One writer at a time; others block on the lock up to the timeout
        options["connect_args"] = {"timeout": settings.sqlite_busy_timeout_seconds}
    else:
        options["pool_pre_ping"] = True
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
    return options


def create_db_engine(db_url: str | None = None, settings: Settings | None = None) -> AsyncEngine:
    settings = settings or get_settings()
    db_url = db_url or settings.database_url
    return create_async_engine(db_url, **engine_options(db_url, settings))


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory used by every service; objects stay usable after commit."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    """Create the questionnaire tables that do not exist yet."""
    import app.db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db(url: str | None = None) -> None:
    """Build the global engine for ``url`` (default DATABASE_URL) and ensure the schema."""
    global _engine, _session_factory

    if _engine is not None:
        return

    _engine = create_db_engine(url)
    _session_factory = build_session_factory(_engine)
    await create_tables(_engine)


async def close_db() -> None:
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the global session factory, or raise RuntimeError before init_db()."""
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _session_factory
