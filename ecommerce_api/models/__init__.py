from ecommerce_api.models.categories import Category
from ecommerce_api.models.products import Product
from ecommerce_api.models.sale_items import SaleItem
from ecommerce_api.models.sales import Sale

__all__ = ["Category", "Product", "Sale", "SaleItem"]
