"""
Test infrastructure for the Blog API.

Strategy
--------
- SQLite in-memory via aiosqlite removes the need for a running Postgres
  instance in CI.
- StaticPool forces all async tasks to share the same in-memory database
  connection; a new connection would see an empty database.
- The app's get_db dependency is overridden so every test-time request uses
  the test session factory rather than the production one.
- All tables are created fresh before each test and dropped after.
- The Redis cache is disabled by setting cache._redis = None; CacheManager
  treats that as a no-op, so tests exercise the real database path.
"""
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from blog_api.cache import cache
from blog_api.config import settings
from blog_api.database import Base, get_db
from blog_api.main import app
from blog_api.middleware import install_query_counter
from blog_api.models import Blog, User

# ---------------------------------------------------------------------------
# Test database engine: SQLite in-memory with aiosqlite
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


# ---------------------------------------------------------------------------
# Dependency override: replace production get_db with the test session factory
# ---------------------------------------------------------------------------

async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        await cache.invalidate_pending(session)


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Helpers shared by test modules
# ---------------------------------------------------------------------------

def auth(user_id: int) -> dict:
    """Headers identifying *user_id* the way the auth gateway does."""
    return {settings.USER_ID_HEADER: str(user_id)}


async def create_user(db: AsyncSession, username: str = "svcuser") -> User:
    user = User(username=username, email=f"{username}@example.com", name=username.title())
    db.add(user)
    await db.flush()
    return user


async def create_blog_row(db: AsyncSession, author: User, slug: str = "raw-blog") -> Blog:
    """Insert a bare Blog row, bypassing slug generation and linking."""
    blog = Blog(
        title=slug.replace("-", " ").title(),
        slug=slug,
        description="Description",
        content="Content",
        image="https://img.example.com/raw.png",
        author_id=author.id,
    )
    db.add(blog)
    await db.flush()
    return blog


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


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """Live AsyncSession for service-level tests."""
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    """
    httpx.AsyncClient wired to the FastAPI app via ASGITransport, with
    Redis disabled so tests do not depend on external infrastructure.
    """
    cache._redis = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
