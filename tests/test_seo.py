import pytest
from autoparts.core.config import settings
from autoparts.core.exceptions import InvalidArgumentError, NotFoundError
from autoparts.core.redis import CacheTTL
from autoparts.schemas.catalog.category import CategoryCreate, CategoryUpdate
from autoparts.services.catalog.category_service import CATEGORIES_SITEMAP_CACHE_KEY
from autoparts.utils.seo import SeoUtil


class TestSeoUtil:
    """Pure metadata generators"""

    def test_truncate_cuts_on_word_boundary(self):
        assert SeoUtil.truncate("короткий текст", 50) == "короткий текст"
        assert SeoUtil.truncate("один два три четыре", 12) == "один два..."
        assert SeoUtil.truncate("оченьдлинноеслово", 5) == "очень..."

    def test_meta_title_mentions_shop(self):
        title = SeoUtil.category_meta_title("Тормозные колодки")

        assert title.startswith("Тормозные колодки - купить")
        assert settings.SHOP_NAME in title
        assert len(title) <= 160

    def test_meta_description_uses_description_when_present(self):
        description = SeoUtil.category_meta_description("Колодки", "Колодки для всех марок.")

        assert description.startswith("Колодки для всех марок.")
        assert f"Доставка по {settings.SHOP_CITY_DATIVE}." in description

    def test_meta_description_truncates_long_description(self):
        long_text = "слово " * 100

        description = SeoUtil.category_meta_description("Колодки", long_text)

        assert "..." in description
        assert len(description) <= 300

    def test_meta_description_fallback(self):
        description = SeoUtil.category_meta_description("Колодки")

        assert '"Колодки"' in description
        assert settings.SHOP_NAME in description

    def test_meta_keywords(self):
        keywords = SeoUtil.category_meta_keywords("Тормозные колодки", "Тормозная система").split(", ")

        assert keywords[:3] == ["тормозные колодки", "тормозные", "колодки"]
        assert "тормозная система" in keywords
        assert "купить тормозные колодки" in keywords
        assert f"тормозные колодки в {settings.SHOP_CITY_PREPOSITIONAL}" in keywords

    def test_meta_keywords_skip_short_words_and_duplicates(self):
        keywords = SeoUtil.category_meta_keywords("ГРМ").split(", ")

        assert keywords[0] == "грм"
        assert keywords.count("грм") == 1

    def test_join_keywords_respects_max_length(self):
        assert SeoUtil.join_keywords(["aaaa", "bbbb", "aaaa", "cccc"], 10) == "aaaa, bbbb"

    def test_canonical_urls(self):
        assert SeoUtil.category_canonical_url("filtry") == "/catalog/filtry"
        assert SeoUtil.product_canonical_url("filtr-mann") == "/product/filtr-mann"
        assert SeoUtil.absolute_url("/catalog/filtry") == f"{settings.BASE_URL.rstrip('/')}/catalog/filtry"

    def test_structured_data_without_breadcrumbs(self):
        data = SeoUtil.category_structured_data("Фильтры", None, "https://example.com/catalog/filtry")

        assert len(data) == 1
        assert data[0]["@type"] == "CollectionPage"


@pytest.mark.asyncio
class TestSeoService:
    """Sitemaps, robots.txt and JSON-LD"""

    async def test_sitemap_index_lists_product_pages(self, seo_service, add_product, monkeypatch):
        monkeypatch.setattr(settings, "PRODUCTS_PER_SITEMAP", 2)
        for _ in range(3):
            await add_product()
        await add_product(is_active=False)

        xml = await seo_service.generate_sitemap_index()

        assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>')
        assert "sitemap-static.xml" in xml
        assert "sitemap-categories.xml" in xml
        assert "sitemap-products-1.xml" in xml
        assert "sitemap-products-2.xml" in xml
        assert "sitemap-products-3.xml" not in xml

    async def test_static_sitemap(self, seo_service):
        xml = await seo_service.generate_static_sitemap()

        assert f"<loc>{settings.BASE_URL.rstrip('/')}/</loc>" in xml
        assert "/delivery</loc>" in xml
        assert xml.count("<url>") == 7

    async def test_categories_sitemap_lists_live_active_categories(self, seo_service, service, cache):
        await service.create_category(CategoryCreate(name="Фильтры", slug="filtry"))
        await service.create_category(CategoryCreate(name="Архив", slug="arhiv", is_active=False))
        removed = await service.create_category(CategoryCreate(name="Удалено", slug="udaleno"))
        await service.soft_delete_category(removed.id)

        xml = await seo_service.generate_categories_sitemap()

        assert "/catalog/filtry</loc>" in xml
        assert "arhiv" not in xml
        assert "udaleno" not in xml
        assert "<lastmod>" in xml
        assert cache.ttls[CATEGORIES_SITEMAP_CACHE_KEY] == CacheTTL.SEO_SITEMAP

    async def test_category_change_refreshes_categories_sitemap(self, seo_service, service):
        category = await service.create_category(CategoryCreate(name="Фильтры", slug="filtry"))
        assert "filtry" in await seo_service.generate_categories_sitemap()

        await service.update_category(category.id, CategoryUpdate(is_active=False))

        assert "filtry" not in await seo_service.generate_categories_sitemap()

    async def test_products_sitemap_pages(self, seo_service, add_product, monkeypatch):
        monkeypatch.setattr(settings, "PRODUCTS_PER_SITEMAP", 2)
        for _ in range(3):
            await add_product()
        await add_product(deleted=True)

        first = await seo_service.generate_products_sitemap(1)
        second = await seo_service.generate_products_sitemap(2)

        assert first.count("<url>") == 2
        assert second.count("<url>") == 1
        assert "/product/product-" in first
        assert "product-4" not in first + second

    async def test_products_sitemap_rejects_non_positive_page(self, seo_service):
        with pytest.raises(InvalidArgumentError):
            await seo_service.generate_products_sitemap(0)

    async def test_robots_txt(self, seo_service):
        robots = seo_service.generate_robots_txt()

        assert "User-agent: *" in robots
        assert "Disallow: /api/" in robots
        assert f"Sitemap: {settings.BASE_URL.rstrip('/')}/sitemap.xml" in robots
        assert "Host: " in robots

    async def test_category_structured_data(self, seo_service, service):
        root = await service.create_category(CategoryCreate(name="Двигатель", slug="dvigatel"))
        await service.create_category(
            CategoryCreate(name="Фильтры", slug="filtry", parent_id=root.id, description="Фильтры двигателя")
        )

        data = await seo_service.get_category_structured_data("filtry")

        breadcrumbs, page = data
        assert breadcrumbs["@type"] == "BreadcrumbList"
        assert [item["position"] for item in breadcrumbs["itemListElement"]] == [1, 2]
        assert breadcrumbs["itemListElement"][0]["name"] == "Двигатель"
        assert breadcrumbs["itemListElement"][1]["item"].endswith("/catalog/filtry")
        assert page["@type"] == "CollectionPage"
        assert page["description"] == "Фильтры двигателя"

    async def test_structured_data_for_unknown_slug(self, seo_service):
        with pytest.raises(NotFoundError):
            await seo_service.get_category_structured_data("missing")
