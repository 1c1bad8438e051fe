from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from autoparts.core.database import get_async_session
from autoparts.core.redis import CacheBackend, get_cache
from autoparts.services.catalog.category_service import CategoryService
from autoparts.services.seo.seo_service import SeoService


async def get_category_service(
    session: AsyncSession = Depends(get_async_session),
    cache: CacheBackend = Depends(get_cache),
) -> CategoryService:
    return CategoryService(session, cache)


async def get_seo_service(
    session: AsyncSession = Depends(get_async_session),
    cache: CacheBackend = Depends(get_cache),
    categories: CategoryService = Depends(get_category_service),
) -> SeoService:
    return SeoService(session, cache, categories)
