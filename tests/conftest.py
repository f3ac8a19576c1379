"""
Test infrastructure for the forum API.

Strategy
--------
- SQLite in-memory via aiosqlite stands in for PostgreSQL.  StaticPool
  makes every session share the one connection that holds the database.
- The app's get_db dependency is overridden, so the GraphQL context
  (which depends on get_db) runs against the test session factory.
- Tables are created before and dropped after each test.
- Redis is replaced by fakeredis: the session store gets a fresh
  ``FakeAsyncRedis`` per test, so sessions and reset tokens behave like
  the real thing without a server.
- bcrypt runs with the minimum work factor to keep the suite fast.
"""
import fakeredis
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from forum.config import settings
from forum.database import Base, get_db
from forum.main import app
from forum.middleware import install_query_counter
from forum.store import store

# ---------------------------------------------------------------------------
# Test database engine — SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)

settings.BCRYPT_ROUNDS = 4
settings.EMAIL_BACKEND = "console"


# ---------------------------------------------------------------------------
# Dependency override — replace production get_db with the test session factory
# ---------------------------------------------------------------------------

async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
    """Point the session store at an in-process fake Redis for each test."""
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    store._redis = client
    yield client
    await client.flushall()
    store._redis = None


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """Yield a live AsyncSession for service-level tests."""
    async with async_session_test() as session:
        yield session


@pytest.fixture
def session_factory() -> async_sessionmaker:
    """The test session factory, for tests that need several sessions at once."""
    return async_session_test


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    """Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def gql(async_client: AsyncClient):
    """
    Return ``await gql(query, **variables) -> dict`` posting to /graphql.

    Cookies set by earlier calls (the session) are sent automatically.
    """

    async def _execute(query: str, **variables) -> dict:
        resp = await async_client.post("/graphql", json={"query": query, "variables": variables})
        assert resp.status_code == 200, resp.text
        return resp.json()

    return _execute

