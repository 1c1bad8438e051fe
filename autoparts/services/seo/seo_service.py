import logging
import math
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from autoparts.core.config import settings
from autoparts.core.exceptions import InvalidArgumentError, NotFoundError
from autoparts.core.redis import CacheBackend, CacheKeys, CacheTTL
from autoparts.models.catalog.category import Category
from autoparts.models.catalog.product import Product
from autoparts.services.catalog.category_service import CATEGORIES_SITEMAP_CACHE_KEY, CategoryService
from autoparts.utils.seo import SeoUtil

logger = logging.getLogger(__name__)

XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n'
SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"

STATIC_PAGES = [
    {"loc": "/", "changefreq": "daily", "priority": "1.0"},
    {"loc": "/catalog", "changefreq": "daily", "priority": "0.9"},
    {"loc": "/about", "changefreq": "monthly", "priority": "0.5"},
    {"loc": "/contacts", "changefreq": "monthly", "priority": "0.5"},
    {"loc": "/delivery", "changefreq": "monthly", "priority": "0.5"},
    {"loc": "/payment", "changefreq": "monthly", "priority": "0.5"},
    {"loc": "/warranty", "changefreq": "monthly", "priority": "0.5"},
]


def _url_entry(loc: str, changefreq: str, priority: str, lastmod: Optional[datetime] = None) -> str:
    xml = "<url>\n"
    xml += f"<loc>{escape(loc)}</loc>\n"
    if lastmod is not None:
        xml += f"<lastmod>{lastmod.date().isoformat()}</lastmod>\n"
    xml += f"<changefreq>{changefreq}</changefreq>\n"
    xml += f"<priority>{priority}</priority>\n"
    xml += "</url>\n"
    return xml


def _urlset(entries: List[str]) -> str:
    return XML_HEADER + f'<urlset xmlns="{SITEMAP_NS}">\n' + "".join(entries) + "</urlset>"


class SeoService:
    """Sitemaps, robots.txt and structured data for search engines."""

    def __init__(self, session: AsyncSession, cache: CacheBackend, categories: Optional[CategoryService] = None):
        self.session = session
        self.cache = cache
        self.categories = categories or CategoryService(session, cache)
        self.base_url = settings.BASE_URL.rstrip("/")

    async def _cached(self, key: str, builder) -> str:
        cached = await self.cache.get(key)
        if cached is not None:
            return cached
        content = await builder()
        await self.cache.set(key, content, CacheTTL.SEO_SITEMAP)
        return content

    async def _count_live_products(self) -> int:
        result = await self.session.execute(
            select(func.count(Product.id)).where(
                Product.deleted_at.is_(None),
                Product.is_active == True
            )
        )
        return result.scalar() or 0

    # ---------- Sitemaps ----------
    async def generate_sitemap_index(self) -> str:
        return await self._cached(f"{CacheKeys.SEO}sitemap:index", self._build_sitemap_index)

    async def _build_sitemap_index(self) -> str:
        total_products = await self._count_live_products()
        product_sitemaps = math.ceil(total_products / settings.PRODUCTS_PER_SITEMAP)

        filenames = ["sitemap-static.xml", "sitemap-categories.xml"]
        filenames += [f"sitemap-products-{page}.xml" for page in range(1, product_sitemaps + 1)]

        lastmod = date.today().isoformat()
        xml = XML_HEADER + f'<sitemapindex xmlns="{SITEMAP_NS}">\n'
        for filename in filenames:
            xml += "  <sitemap>\n"
            xml += f"    <loc>{escape(self.base_url)}/{filename}</loc>\n"
            xml += f"    <lastmod>{lastmod}</lastmod>\n"
            xml += "  </sitemap>\n"
        xml += "</sitemapindex>"
        return xml

    async def generate_static_sitemap(self) -> str:
        entries = [
            _url_entry(SeoUtil.absolute_url(page["loc"]), page["changefreq"], page["priority"])
            for page in STATIC_PAGES
        ]
        return _urlset(entries)

    async def generate_categories_sitemap(self) -> str:
        return await self._cached(CATEGORIES_SITEMAP_CACHE_KEY, self._build_categories_sitemap)

    async def _build_categories_sitemap(self) -> str:
        result = await self.session.execute(
            select(Category.slug, Category.updated_at)
            .where(Category.deleted_at.is_(None), Category.is_active == True)
            .order_by(Category.updated_at.desc())
        )
        entries = [
            _url_entry(
                SeoUtil.absolute_url(SeoUtil.category_canonical_url(slug)), "weekly", "0.8", updated_at
            )
            for slug, updated_at in result.all()
        ]
        return _urlset(entries)

    async def generate_products_sitemap(self, page: int) -> str:
        if page < 1:
            raise InvalidArgumentError("Sitemap page must be a positive number", page=page)

        async def build() -> str:
            result = await self.session.execute(
                select(Product.slug, Product.updated_at)
                .where(Product.deleted_at.is_(None), Product.is_active == True)
                .order_by(Product.updated_at.desc(), Product.id)
                .offset((page - 1) * settings.PRODUCTS_PER_SITEMAP)
                .limit(settings.PRODUCTS_PER_SITEMAP)
            )
            entries = [
                _url_entry(
                    SeoUtil.absolute_url(SeoUtil.product_canonical_url(slug)), "weekly", "0.7", updated_at
                )
                for slug, updated_at in result.all()
            ]
            return _urlset(entries)

        return await self._cached(f"{CacheKeys.SEO}sitemap:products:{page}", build)

    def generate_robots_txt(self) -> str:
        host = self.base_url.split("://", 1)[-1]
        return (
            f"# Robots.txt for {self.base_url}\n"
            "User-agent: *\n"
            "Allow: /\n"
            "Disallow: /api/\n"
            "Disallow: /admin/\n"
            "Disallow: /cart\n"
            "Disallow: /checkout\n"
            "Disallow: /profile\n"
            "Disallow: /*.json$\n"
            "Disallow: /*?*sort=\n"
            "Disallow: /*?*filter=\n"
            "Disallow: /*?*page=\n"
            "\n"
            "# Sitemap\n"
            f"Sitemap: {self.base_url}/sitemap.xml\n"
            "\n"
            "# Crawl-delay\n"
            "Crawl-delay: 1\n"
            "\n"
            "# Yandex\n"
            "User-agent: Yandex\n"
            "Allow: /\n"
            "Disallow: /api/\n"
            "Disallow: /admin/\n"
            "Clean-param: utm_source&utm_medium&utm_campaign&utm_term&utm_content&yclid&gclid&fbclid\n"
            f"Host: {host}\n"
        )

    # ---------- Structured data ----------
    async def get_category_structured_data(self, slug: str) -> List[Dict[str, Any]]:
        category = await self.categories.find_by_slug(slug)
        if not category:
            raise NotFoundError("Category not found", slug=slug)

        breadcrumbs = await self.categories.get_category_path(category.id)
        return SeoUtil.category_structured_data(
            name=category.name,
            description=category.description,
            canonical_url=SeoUtil.absolute_url(SeoUtil.category_canonical_url(slug)),
            breadcrumbs=[
                {"name": crumb.name, "url": SeoUtil.absolute_url(SeoUtil.category_canonical_url(crumb.slug))}
                for crumb in breadcrumbs
            ],
        )
