"""
Pytest fixtures - test DB, services, client, auth (TDD/BDD support).
Challenge: Isolated tests; no broker, Redis or Elasticsearch needed.
"""

import itertools
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from lendhub.cache.user_cache import UserCache
from lendhub.core.dependencies import get_indexer, get_notifier, get_services, get_user_cache
from lendhub.core.security import create_access_token
from lendhub.db.base import Base
from lendhub.db.models import Item, Role, User
from lendhub.db.session import enable_sqlite_savepoints, get_db
from lendhub.main import app
from lendhub.services.factory import Services, build_services
from lendhub.services.item_service import location_values
from tests.fakes import RecordingIndexer, RecordingNotifier

# One shared in-memory connection per test; SAVEPOINT support for ledger batches
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with async_session() as s:
        yield s


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def indexer() -> RecordingIndexer:
    return RecordingIndexer()


@pytest.fixture
def user_cache() -> UserCache:
    return UserCache()


@pytest.fixture
def services(session, notifier, indexer, user_cache) -> Services:
    # category_cache_ttl=0: category lists read straight from the ledger (no Redis)
    return build_services(
        session, notifier=notifier, indexer=indexer, user_cache=user_cache, category_cache_ttl=0
    )


@pytest.fixture
def make_user(session: AsyncSession):
    """Factory: ``await make_user("alice", location=(52.37, 4.89))``."""
    counter = itertools.count(1)

    async def _make(
        nickname: str | None = None,
        location: tuple[float, float] | None = None,
        role: Role = Role.USER,
    ) -> User:
        n = next(counter)
        nickname = nickname or f"user{n}"
        user = User(
            email=f"{nickname.lower().replace(' ', '.')}.{n}@example.com",
            hashed_password="not-a-bcrypt-hash",
            nickname=nickname,
            role=role,
            **location_values(location),
        )
        session.add(user)
        await session.flush()
        await session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_legacy_item(session: AsyncSession):
    """Insert an item directly, bypassing the ledger (data from before counters existed)."""

    async def _make(owner: User, name: str, categories: list[str], location=None) -> Item:
        item = Item(owner_id=owner.id, name=name, **location_values(location or owner.location))
        item.set_categories(categories)
        session.add(item)
        await session.flush()
        await session.refresh(item)
        return item

    return _make


@pytest_asyncio.fixture
async def client(session: AsyncSession, services: Services, notifier, indexer, user_cache):
    async def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_services] = lambda: services
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_indexer] = lambda: indexer
    app.dependency_overrides[get_user_cache] = lambda: user_cache
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def headers_for():
    return auth_headers
