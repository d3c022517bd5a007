from __future__ import annotations

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from apps.api.services.database import create_engine, create_session_factory, ensure_schema
from apps.api.tickets.service import TicketService


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncEngine:
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'tickets.db'}")
    await ensure_schema(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def service(session_factory: async_sessionmaker) -> TicketService:
    return TicketService(session_factory)
