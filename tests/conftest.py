"""Shared test fixtures and configuration for cashflow engine tests."""
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from cashflow.data import models  # noqa: F401  registers tables on Base.metadata
from cashflow.data.types import ScenarioSnapshot
from cashflow.database import Base
from tests.factories import ORG_ID


@pytest.fixture
def base_scenario():
    return ScenarioSnapshot(id="scenario-base", organization_id=ORG_ID, name="Base Forecast", is_base=True)


@pytest.fixture
def what_if_scenario():
    return ScenarioSnapshot(id="scenario-delay", organization_id=ORG_ID, name="Wet Season Delay")


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """In-memory SQLite session with every table created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()
