"""Async test fixtures for tracker tests using SQLite."""

from __future__ import annotations

from datetime import date

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from tracker.config import settings
from tracker.database import get_db
from tracker.models.base import Base
from tracker.services import opportunity_svc


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def db(engine):
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def opportunity(db: AsyncSession):
    return await opportunity_svc.create_opportunity(
        db,
        name="Acme Expansion",
        account_name="Acme Corp",
        subscription_start_date=date(2024, 7, 1),
        has_services_flag=False,
    )


@pytest_asyncio.fixture
async def app(engine):
    """The tracker app with its DB dependency bound to the test engine."""
    from tracker.app import app as tracker_app

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    tracker_app.dependency_overrides[get_db] = override_get_db
    yield tracker_app
    tracker_app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app):
    """HTTPX async test client against the tracker app, acting as "user-a"."""
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={settings.user_header: "user-a"},
    ) as c:
        yield c


@pytest_asyncio.fixture
async def created_opportunity(client: AsyncClient) -> dict:
    resp = await client.post("/api/opportunities", json={
        "name": "Acme Expansion",
        "account_name": "Acme Corp",
        "subscription_start_date": "2024-07-01",
        "has_services_flag": False,
    })
    assert resp.status_code == 201
    return resp.json()
