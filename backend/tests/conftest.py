"""Shared fixtures: a fresh SQLite database per test and an app wired to it."""

import os


# Must be set before learnlink is imported: settings and the engine are built at import time
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["AUTH_PROVIDER"] = "header"
os.environ["RATE_LIMIT_ENABLED"] = "false"

from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path
from uuid import UUID

import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from learnlink.database.engine import create_app_engine
from learnlink.database.models import Base
from learnlink.database.session import build_session_maker, get_db_session
from learnlink.main import create_app
from tests.helpers import ALICE


@pytest_asyncio.fixture
async def db_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_app_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_maker(db_engine)


@pytest_asyncio.fixture
async def db_session(session_maker: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def app(session_maker: async_sessionmaker[AsyncSession]) -> FastAPI:
    application = create_app()

    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db_session] = override_get_db_session
    return application


@pytest_asyncio.fixture
async def client_factory(app: FastAPI) -> AsyncGenerator[Callable[..., Awaitable[AsyncClient]], None]:
    """Build clients acting as a given user (X-User-Id), or anonymous with ``user_id=None``."""
    clients: list[AsyncClient] = []

    async def factory(user_id: UUID | None = ALICE) -> AsyncClient:
        headers = {"X-User-Id": str(user_id)} if user_id else {}
        client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test", headers=headers)
        clients.append(client)
        return client

    yield factory

    for client in clients:
        await client.aclose()
