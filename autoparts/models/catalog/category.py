from sqlalchemy import Column, Integer, String, Boolean, Text, ForeignKey, Index, text
from sqlalchemy.orm import relationship
from autoparts.db.base import BaseModel

class Category(BaseModel):
    __tablename__ = 'categories'

    name = Column(String(100), nullable=False)
    slug = Column(String(100), nullable=False)
    description = Column(Text)
    parent_id = Column(String(36), ForeignKey('categories.id'), nullable=True, index=True)
    sort_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # SEO
    meta_title = Column(String(160))
    meta_description = Column(String(300))
    meta_keywords = Column(String(300))

    # Self-referential relationship for parent/child categories
    parent = relationship(
        "Category",
        remote_side="Category.id",
        back_populates="children"
    )
    children = relationship(
        "Category",
        back_populates="parent",
        order_by="Category.sort_order",
    )
    product_links = relationship("ProductCategory", back_populates="category")

    __table_args__ = (
        # Slug is unique among live rows only
        Index(
            "uq_categories_slug_live",
            "slug",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )
