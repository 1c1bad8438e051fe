from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship
from autoparts.db.base import BaseModel

class Product(BaseModel):
    __tablename__ = 'products'

    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    sku = Column(String(100), index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    category_links = relationship("ProductCategory", back_populates="product")
