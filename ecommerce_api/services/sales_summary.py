from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from ecommerce_api.models.categories import Category
from ecommerce_api.models.mixins import as_utc
from ecommerce_api.models.products import Product
from ecommerce_api.models.sale_items import SaleItem
from ecommerce_api.models.sales import Sale


def get_sales_summary(db: Session) -> list[dict]:
    """Per product: units sold, revenue from the stored line prices, last sale date.

    Soft-deleted products still count; their sales happened.
    """
    revenue = func.coalesce(func.sum(SaleItem.unit_price * SaleItem.quantity), 0)

    rows = (
        db.query(
            Product.id.label("product_id"),
            Product.name.label("product_name"),
            Category.name.label("category_name"),
            func.coalesce(func.sum(SaleItem.quantity), 0).label("total_quantity_sold"),
            revenue.label("total_revenue"),
            func.max(Sale.sale_date).label("last_sale_date"),
        )
        .join(SaleItem, SaleItem.product_id == Product.id)
        .join(Sale, SaleItem.sale_id == Sale.id)
        .join(Category, Product.category_id == Category.id)
        .group_by(Product.id, Product.name, Category.name)
        .order_by(revenue.desc(), Product.id)
        .all()
    )

    return [
        {
            "product_id": row.product_id,
            "product_name": row.product_name,
            "category_name": row.category_name,
            "total_quantity_sold": int(row.total_quantity_sold),
            "total_revenue": Decimal(str(row.total_revenue)).quantize(Decimal("0.01")),
            "last_sale_date": as_utc(row.last_sale_date),
        }
        for row in rows
    ]
