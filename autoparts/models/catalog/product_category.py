from sqlalchemy import Column, String, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from autoparts.db.base import Base

class ProductCategory(Base):
    __tablename__ = 'product_categories'

    product_id = Column(String(36), ForeignKey('products.id'), primary_key=True)
    category_id = Column(String(36), ForeignKey('categories.id'), primary_key=True, index=True)
    is_primary = Column(Boolean, default=False, nullable=False)

    product = relationship("Product", back_populates="category_links")
    category = relationship("Category", back_populates="product_links")
