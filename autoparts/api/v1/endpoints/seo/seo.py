from fastapi import APIRouter, Depends, Response
from fastapi.responses import PlainTextResponse
from typing import Any, Dict, List
from autoparts.api.dependencies import get_seo_service
from autoparts.services.seo.seo_service import SeoService

# Served from the site root, outside /api/v1
public_router = APIRouter()
router = APIRouter()

XML_MEDIA_TYPE = "application/xml"

@public_router.get("/sitemap.xml", include_in_schema=False)
async def get_sitemap_index(service: SeoService = Depends(get_seo_service)):
    return Response(content=await service.generate_sitemap_index(), media_type=XML_MEDIA_TYPE)

@public_router.get("/sitemap-static.xml", include_in_schema=False)
async def get_static_sitemap(service: SeoService = Depends(get_seo_service)):
    return Response(content=await service.generate_static_sitemap(), media_type=XML_MEDIA_TYPE)

@public_router.get("/sitemap-categories.xml", include_in_schema=False)
async def get_categories_sitemap(service: SeoService = Depends(get_seo_service)):
    return Response(content=await service.generate_categories_sitemap(), media_type=XML_MEDIA_TYPE)

@public_router.get("/sitemap-products-{page}.xml", include_in_schema=False)
async def get_products_sitemap(page: int, service: SeoService = Depends(get_seo_service)):
    return Response(content=await service.generate_products_sitemap(page), media_type=XML_MEDIA_TYPE)

@public_router.get("/robots.txt", response_class=PlainTextResponse, include_in_schema=False)
async def get_robots_txt(service: SeoService = Depends(get_seo_service)):
    return service.generate_robots_txt()

@router.get("/structured-data/category/{slug}", response_model=List[Dict[str, Any]])
async def get_category_structured_data(
    slug: str,
    service: SeoService = Depends(get_seo_service),
):
    """Get JSON-LD structured data for category page"""
    return await service.get_category_structured_data(slug)
