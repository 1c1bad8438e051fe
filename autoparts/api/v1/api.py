from fastapi import APIRouter
from autoparts.api.v1.endpoints.catalog import categories
from autoparts.api.v1.endpoints.seo import seo

api_router = APIRouter()

# Catalog routes
api_router.include_router(categories.router, prefix="/categories", tags=["Categories"])

# SEO routes
api_router.include_router(seo.router, prefix="/seo", tags=["SEO"])
