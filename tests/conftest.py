"""Shared fixtures: in-memory database, fake response generator, fake browser storage."""

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from api.features.conversation.service import ConversationService
from api.shared.entities.registry import BaseEntity
from counselor.generator import ResponseGenerator
from streamlit_ui.identity import StorageNotReady

CLIENT_ID = "0b6f7c4e-3a52-4d8e-9d1b-7f2a4c6e8a10"
OTHER_CLIENT_ID = "6a1d2e3f-4b5c-4d7e-8f90-a1b2c3d4e5f6"


class FakeBrowserStorage:
    """localStorage of one browser profile, answering reads immediately."""

    def __init__(self, ready=True):
        self.items = {}
        self.ready = ready
        self.flushes = 0

    def get_item(self, name):
        if not self.ready:
            raise StorageNotReady(name)
        return self.items.get(name)

    def set_item(self, name, value):
        self.items[name] = value

    def remove_item(self, name):
        self.items.pop(name, None)

    def flush(self):
        self.flushes += 1


@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite engine with the chat schema created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(BaseEntity.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine):
    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def mock_generator():
    """Generator double that answers every call with a fixed reply."""
    generator = AsyncMock(spec=ResponseGenerator)
    generator.generate.return_value = "Here is some career advice."
    generator.generate_with_context.return_value = "Building on what we discussed..."
    return generator


@pytest.fixture
def service(mock_generator):
    return ConversationService(mock_generator)
