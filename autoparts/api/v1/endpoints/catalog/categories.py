from fastapi import APIRouter, Depends, Query, Response, status
from typing import List
from autoparts.api.dependencies import get_category_service
from autoparts.core.exceptions import NotFoundError
from autoparts.services.catalog.category_service import CategoryService
from autoparts.schemas.catalog.category import (
    CategoryBreadcrumb,
    CategoryCreate,
    CategoryInDB,
    CategoryRead,
    CategoryTreeNode,
    CategoryUpdate,
    ProductCountResponse,
)

router = APIRouter()

@router.post("/", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
async def create_category(
    category_data: CategoryCreate,
    service: CategoryService = Depends(get_category_service),
):
    """Create a new category"""
    return await service.create_category(category_data)

@router.get("/", response_model=List[CategoryInDB])
async def get_categories(
    include_inactive: bool = Query(False),
    service: CategoryService = Depends(get_category_service),
):
    """Get all categories as a flat list"""
    return await service.get_categories(include_inactive=include_inactive)

@router.get("/tree", response_model=List[CategoryTreeNode])
async def get_category_tree(
    include_inactive: bool = Query(False),
    service: CategoryService = Depends(get_category_service),
):
    """Get category tree with product counts"""
    return await service.get_category_tree(include_inactive=include_inactive)

@router.get("/slug/{slug}", response_model=CategoryRead)
async def get_category_by_slug(
    slug: str,
    service: CategoryService = Depends(get_category_service),
):
    """Get category by slug"""
    category = await service.find_by_slug(slug)
    if not category:
        raise NotFoundError("Category not found", slug=slug)
    return category

@router.get("/{category_id}", response_model=CategoryRead)
async def get_category(
    category_id: str,
    service: CategoryService = Depends(get_category_service),
):
    """Get category by ID"""
    category = await service.find_by_id(category_id)
    if not category:
        raise NotFoundError("Category not found", category_id=category_id)
    return category

@router.get("/{category_id}/subcategories", response_model=List[CategoryRead])
async def get_subcategories(
    category_id: str,
    include_inactive: bool = Query(False),
    service: CategoryService = Depends(get_category_service),
):
    """Get immediate subcategories"""
    return await service.get_subcategories(category_id, include_inactive=include_inactive)

@router.get("/{category_id}/path", response_model=List[CategoryBreadcrumb])
async def get_category_path(
    category_id: str,
    service: CategoryService = Depends(get_category_service),
):
    """Get category breadcrumbs, root first"""
    return await service.get_category_path(category_id)

@router.get("/{category_id}/product-count", response_model=ProductCountResponse)
async def get_product_count(
    category_id: str,
    include_subcategories: bool = Query(False),
    service: CategoryService = Depends(get_category_service),
):
    """Get number of live products in category"""
    count = await service.get_product_count(category_id, include_subcategories=include_subcategories)
    return {"count": count}

@router.patch("/{category_id}", response_model=CategoryRead)
async def update_category(
    category_id: str,
    category_data: CategoryUpdate,
    service: CategoryService = Depends(get_category_service),
):
    """Update category"""
    return await service.update_category(category_id, category_data)

@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: str,
    service: CategoryService = Depends(get_category_service),
):
    """Delete category (soft delete)"""
    await service.soft_delete_category(category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
