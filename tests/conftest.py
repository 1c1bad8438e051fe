import pytest
from typing import AsyncGenerator, Dict, Optional
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from autoparts.main import app
from autoparts.core.database import get_async_session
from autoparts.core.redis import get_cache
from autoparts.db.base import Base, utcnow
from autoparts.models import Product, ProductCategory
from autoparts.services.catalog.category_service import CategoryService
from autoparts.services.seo.seo_service import SeoService

# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite://"


class InMemoryCache:
    """Dict-backed stand-in for the Redis client (TTL is recorded, not enforced)."""

    def __init__(self):
        self.store: Dict[str, str] = {}
        self.ttls: Dict[str, Optional[int]] = {}

    async def get(self, key: str) -> Optional[str]:
        return self.store.get(key)

    async def set(self, key: str, value: str, expire: Optional[int] = None):
        self.store[key] = value
        self.ttls[key] = expire
        return True

    async def delete(self, *keys: str):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed


@pytest.fixture
async def session_maker():
    """Fresh in-memory database per test"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def file_session_maker(tmp_path):
    """File-backed database; each session gets its own connection"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture
def cache() -> InMemoryCache:
    return InMemoryCache()


@pytest.fixture
def service(session, cache) -> CategoryService:
    return CategoryService(session, cache)


@pytest.fixture
def seo_service(session, cache, service) -> SeoService:
    return SeoService(session, cache, service)


@pytest.fixture
def add_product(session):
    """Create a product, optionally linked to categories"""
    counter = {"n": 0}

    async def _add_product(*category_ids: str, is_active: bool = True, deleted: bool = False) -> Product:
        counter["n"] += 1
        product = Product(
            name=f"Product {counter['n']}",
            slug=f"product-{counter['n']}",
            sku=f"SKU-{counter['n']:04d}",
            is_active=is_active,
        )
        if deleted:
            product.deleted_at = utcnow()
        session.add(product)
        await session.flush()
        for index, category_id in enumerate(category_ids):
            session.add(ProductCategory(product_id=product.id, category_id=category_id, is_primary=index == 0))
        await session.commit()
        return product

    return _add_product


@pytest.fixture
async def client(session_maker, cache) -> AsyncGenerator[AsyncClient, None]:
    """Create test client"""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            yield session

    async def override_get_cache():
        return cache

    app.dependency_overrides[get_async_session] = override_get_db
    app.dependency_overrides[get_cache] = override_get_cache

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
