from pydantic import BaseModel, ConfigDict, Field, validator
from typing import Optional, List
from datetime import datetime


def clean_name(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    if not v.strip():
        raise ValueError("Name must not be blank")
    return v.strip()


class CategoryBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    parent_id: Optional[str] = None
    sort_order: int = Field(0, ge=0)
    is_active: bool = True

    # SEO (generated from name/description when omitted)
    meta_title: Optional[str] = Field(None, max_length=160)
    meta_description: Optional[str] = Field(None, max_length=300)
    meta_keywords: Optional[str] = Field(None, max_length=300)

    @validator("name")
    def validate_name(cls, v):
        return clean_name(v)


class CategoryCreate(CategoryBase):
    slug: str = Field(..., min_length=2, max_length=100)

    @validator("slug")
    def validate_slug(cls, v):
        if v != v.strip() or "/" in v:
            raise ValueError("Slug must be a single URL path segment")
        return v


class CategoryUpdate(BaseModel):
    """Partial update; slug is immutable. An explicit null parent_id moves the node to the root."""
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    parent_id: Optional[str] = None
    sort_order: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None
    meta_title: Optional[str] = Field(None, max_length=160)
    meta_description: Optional[str] = Field(None, max_length=300)
    meta_keywords: Optional[str] = Field(None, max_length=300)

    @validator("name")
    def validate_name(cls, v):
        return clean_name(v)


# Shallow reference used for parent/children to avoid deep recursion
class CategoryRef(BaseModel):
    id: str
    name: str
    slug: str
    parent_id: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True

    model_config = ConfigDict(from_attributes=True)


class CategoryBreadcrumb(BaseModel):
    id: str
    name: str
    slug: str

    model_config = ConfigDict(from_attributes=True)


class CategoryInDB(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    parent_id: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    meta_keywords: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# Final response model
class CategoryRead(CategoryInDB):
    parent: Optional[CategoryRef] = None
    children: List[CategoryRef] = Field(default_factory=list)
    product_count: int = 0
    canonical_url: Optional[str] = None


class CategoryTreeNode(CategoryInDB):
    product_count: int = 0
    total_product_count: int = 0
    canonical_url: Optional[str] = None
    children: List["CategoryTreeNode"] = Field(default_factory=list)


class ProductCountResponse(BaseModel):
    count: int


CategoryTreeNode.model_rebuild()
