from __future__ import annotations

from typing import Any

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

# Registers the ticket tables on SQLModel.metadata.
import packages.db.models  # noqa: F401


def to_async_dsn(dsn: str) -> str:
    """Ensure the SQLAlchemy DSN uses an async driver."""

    if dsn.startswith("postgresql://"):
        return "postgresql+asyncpg://" + dsn[len("postgresql://") :]
    if dsn.startswith("sqlite://"):
        return "sqlite+aiosqlite://" + dsn[len("sqlite://") :]
    return dsn


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(dsn: str, *, echo: bool = False) -> AsyncEngine:
    """Build an async engine; SQLite connections get foreign key enforcement."""

    engine = create_async_engine(to_async_dsn(dsn), echo=echo, future=True)
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


async def ensure_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)


async def ping(engine: AsyncEngine) -> bool:
    """Run ``SELECT 1`` against the database."""

    async with engine.connect() as connection:
        await connection.execute(text("SELECT 1"))
    return True
