from autoparts.models.catalog.category import Category
from autoparts.models.catalog.product import Product
from autoparts.models.catalog.product_category import ProductCategory
