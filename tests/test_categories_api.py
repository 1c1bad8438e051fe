import logging
import pytest
from httpx import AsyncClient

API = "/api/v1/categories"


async def create_category(client: AsyncClient, name: str, slug: str, **extra) -> dict:
    response = await client.post(f"{API}/", json={"name": name, "slug": slug, **extra})
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
class TestCategoryEndpoints:
    """HTTP surface of the category tree"""

    async def test_create_and_get(self, client: AsyncClient):
        created = await create_category(client, "Масла", "masla", description="Моторные и трансмиссионные")

        assert created["slug"] == "masla"
        assert created["canonical_url"] == "/catalog/masla"
        assert created["meta_title"]

        response = await client.get(f"{API}/{created['id']}")
        assert response.status_code == 200
        assert response.json()["name"] == "Масла"

        response = await client.get(f"{API}/slug/masla")
        assert response.status_code == 200
        assert response.json()["id"] == created["id"]

    async def test_create_validation_error(self, client: AsyncClient):
        response = await client.post(f"{API}/", json={"name": "М", "slug": "m"})
        assert response.status_code == 422

        response = await client.post(f"{API}/", json={"name": "Масла", "slug": "a/b"})
        assert response.status_code == 422

    async def test_duplicate_slug_returns_409(self, client: AsyncClient):
        await create_category(client, "Масла", "masla")

        response = await client.post(f"{API}/", json={"name": "Масла 2", "slug": "masla"})

        assert response.status_code == 409
        assert response.json()["slug"] == "masla"

    async def test_unknown_category_returns_404(self, client: AsyncClient):
        assert (await client.get(f"{API}/missing")).status_code == 404
        assert (await client.get(f"{API}/slug/missing")).status_code == 404
        assert (await client.get(f"{API}/missing/path")).status_code == 404
        assert (await client.get(f"{API}/missing/subcategories")).status_code == 404

    async def test_tree_path_and_subcategories(self, client: AsyncClient):
        root = await create_category(client, "Двигатель", "dvigatel")
        child = await create_category(client, "Фильтры", "filtry", parent_id=root["id"])
        await create_category(client, "Скрытая", "skrytaya", parent_id=root["id"], is_active=False)

        tree = (await client.get(f"{API}/tree")).json()
        assert [node["id"] for node in tree] == [root["id"]]
        assert [node["id"] for node in tree[0]["children"]] == [child["id"]]
        assert tree[0]["total_product_count"] == 0

        tree_all = (await client.get(f"{API}/tree", params={"include_inactive": True})).json()
        assert len(tree_all[0]["children"]) == 2

        path = (await client.get(f"{API}/{child['id']}/path")).json()
        assert [crumb["slug"] for crumb in path] == ["dvigatel", "filtry"]

        subcategories = (await client.get(f"{API}/{root['id']}/subcategories")).json()
        assert [item["id"] for item in subcategories] == [child["id"]]

        flat = (await client.get(f"{API}/")).json()
        assert [item["slug"] for item in flat] == ["dvigatel", "filtry"]

    async def test_product_count(self, client: AsyncClient, add_product):
        root = await create_category(client, "Двигатель", "dvigatel")
        child = await create_category(client, "Фильтры", "filtry", parent_id=root["id"])
        await add_product(child["id"])

        response = await client.get(f"{API}/{root['id']}/product-count")
        assert response.json() == {"count": 0}

        response = await client.get(
            f"{API}/{root['id']}/product-count", params={"include_subcategories": True}
        )
        assert response.json() == {"count": 1}

    async def test_cycle_returns_400_with_context(self, client: AsyncClient):
        root = await create_category(client, "Двигатель", "dvigatel")
        child = await create_category(client, "Фильтры", "filtry", parent_id=root["id"])

        response = await client.patch(f"{API}/{root['id']}", json={"parent_id": child["id"]})

        assert response.status_code == 400
        body = response.json()
        assert "circular" in body["detail"]
        assert body["parent_id"] == child["id"]

    async def test_patch_moves_and_renames(self, client: AsyncClient):
        root = await create_category(client, "Двигатель", "dvigatel")
        child = await create_category(client, "Фильтры", "filtry", parent_id=root["id"])

        response = await client.patch(f"{API}/{child['id']}", json={"parent_id": None, "name": "Все фильтры"})

        assert response.status_code == 200
        body = response.json()
        assert body["parent"] is None
        assert body["name"] == "Все фильтры"
        assert body["slug"] == "filtry"

    async def test_blank_name_patch_is_rejected(self, client: AsyncClient):
        created = await create_category(client, "Масла", "masla")

        response = await client.patch(f"{API}/{created['id']}", json={"name": "   "})
        assert response.status_code == 422

        response = await client.patch(f"{API}/{created['id']}", json={"name": "  Моторные масла  "})
        assert response.status_code == 200
        assert response.json()["name"] == "Моторные масла"

    async def test_delete_guard_and_success(self, client: AsyncClient, add_product):
        root = await create_category(client, "Двигатель", "dvigatel")
        child = await create_category(client, "Фильтры", "filtry", parent_id=root["id"])
        await add_product(child["id"])

        response = await client.delete(f"{API}/{root['id']}")
        assert response.status_code == 409
        assert response.json()["children_count"] == 1

        response = await client.delete(f"{API}/{child['id']}")
        assert response.status_code == 409
        assert response.json()["product_count"] == 1

        leaf = await create_category(client, "Ремни", "remni", parent_id=root["id"])
        response = await client.delete(f"{API}/{leaf['id']}")
        assert response.status_code == 204
        assert (await client.get(f"{API}/{leaf['id']}")).status_code == 404


@pytest.mark.asyncio
class TestSeoEndpoints:

    async def test_sitemaps_are_served_as_xml(self, client: AsyncClient):
        await create_category(client, "Масла", "masla")

        for path in ("/sitemap.xml", "/sitemap-static.xml", "/sitemap-categories.xml", "/sitemap-products-1.xml"):
            response = await client.get(path)
            assert response.status_code == 200, path
            assert response.headers["content-type"].startswith("application/xml")

        response = await client.get("/sitemap-categories.xml")
        assert "/catalog/masla</loc>" in response.text

    async def test_products_sitemap_page_zero_is_rejected(self, client: AsyncClient):
        response = await client.get("/sitemap-products-0.xml")

        assert response.status_code == 400

    async def test_robots_txt(self, client: AsyncClient):
        response = await client.get("/robots.txt")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "Sitemap:" in response.text

    async def test_structured_data(self, client: AsyncClient):
        await create_category(client, "Масла", "masla")

        response = await client.get("/api/v1/seo/structured-data/category/masla")
        assert response.status_code == 200
        assert response.json()[-1]["@type"] == "CollectionPage"

        response = await client.get("/api/v1/seo/structured-data/category/missing")
        assert response.status_code == 404

    async def test_process_time_header(self, client: AsyncClient):
        response = await client.get("/robots.txt")

        assert "x-process-time" in response.headers


@pytest.mark.asyncio
class TestAccessLog:

    async def test_access_line_level_follows_status(self, client: AsyncClient, caplog, monkeypatch):
        monkeypatch.setattr(logging.getLogger("access"), "propagate", True)

        with caplog.at_level(logging.INFO, logger="access"):
            await client.get(f"{API}/missing")
            await client.get("/robots.txt", params={"utm_source": "yandex"})

        records = [record for record in caplog.records if record.name == "access"]
        assert len(records) == 2
        assert records[0].levelno == logging.WARNING
        assert "GET /api/v1/categories/missing 404" in records[0].getMessage()
        assert records[1].levelno == logging.INFO
        assert "GET /robots.txt?utm_source=yandex 200" in records[1].getMessage()
