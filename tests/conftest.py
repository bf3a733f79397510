import os
import sys

import httpx
from httpx import AsyncClient
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set testing environment variable
os.environ["TESTING"] = "1"

# Add the project root to the path so imports work
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from formguard.database import Base, get_db
from formguard.tokens.manager import TokenManager
import formguard.models  # noqa: F401
from main import app

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

START_TIME = 1_700_000_000


class FakeClock:
    """Manually advanced stand-in for time.time()."""

    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingState(dict):
    """Session state that counts how often each key is written."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.writes = 0

    def __setitem__(self, key, value):
        self.writes += 1
        super().__setitem__(key, value)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session_state():
    return RecordingState()


@pytest.fixture
def make_manager(session_state, clock):
    """Build a manager over the shared session state, like a new request would."""

    def factory(**kwargs):
        kwargs.setdefault("clock", clock)
        return TokenManager(session_state, **kwargs)

    return factory


@pytest.fixture
def manager(make_manager):
    return make_manager()


@pytest_asyncio.fixture
async def session_factory():
    """Create an in-memory database and return a session factory bound to it."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    finally:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()


@pytest_asyncio.fixture
async def test_db(session_factory):
    """Create a test database session."""
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()


@pytest_asyncio.fixture
async def client(test_db):
    """Create a test client with dependency override."""

    def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
