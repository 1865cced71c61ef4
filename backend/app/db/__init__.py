"""Database package: shared engine and session factory."""

from app.db.base import (
    Base,
    build_session_factory,
    close_db,
    create_db_engine,
    create_tables,
    get_session_factory,
    init_db,
)

__all__ = [
    "Base",
    "build_session_factory",
    "close_db",
    "create_db_engine",
    "create_tables",
    "get_session_factory",
    "init_db",
]
