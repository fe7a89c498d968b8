"""
Pytest configuration and fixtures.
"""

import sys
from datetime import datetime, timedelta
from itertools import count
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Add project root
sys.path.insert(0, str(Path(__file__).parent.parent))

from focusflow.infra.db import Base
from focusflow.services.command_processor import ProcessorContext


@pytest_asyncio.fixture
async def db_engine():
    """Create an in-memory SQLite database for testing"""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Create a new session for a test"""
    async_session = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as session:
        yield session


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock():
    # A Monday morning
    return FakeClock(datetime(2026, 3, 2, 9, 0, 0))


@pytest.fixture
def ctx(clock):
    """Processor context with a fixed clock and predictable ids"""
    ids = count(1)
    return ProcessorContext(now=clock, new_id=lambda: f"id-{next(ids)}")
