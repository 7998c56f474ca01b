"""
Database engine and session factory.

PostgreSQL (asyncpg) in production; SQLite (aiosqlite) for local runs and
tests, where foreign keys have to be switched on per connection so that
deleting a user also drops their sessions.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import (AsyncEngine, AsyncSession,
                                    async_sessionmaker, create_async_engine)

from app.core.config import settings


def _engine_options(url: URL) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": False, "pool_pre_ping": True}
    if url.get_backend_name() == "postgresql":
        options.update(pool_size=20, max_overflow=10, pool_recycle=300)
    return options


def enable_sqlite_foreign_keys(dbapi_connection, _record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str) -> AsyncEngine:
    url = make_url(database_url)
    async_engine = create_async_engine(url, **_engine_options(url))
    if url.get_backend_name() == "sqlite":
        event.listen(async_engine.sync_engine, "connect", enable_sqlite_foreign_keys)
    return async_engine


engine = build_engine(settings.DATABASE_URL)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)
