# ecommerce_api/models/products.py

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import relationship

from ecommerce_api.database import Base
from ecommerce_api.models.mixins import SoftDeleteMixin, TimestampMixin


class Product(SoftDeleteMixin, TimestampMixin, Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=False, default="")
    price = Column(Numeric(10, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    category_id = Column(
        Integer,
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    category = relationship("Category", back_populates="products")

    __table_args__ = (
        Index("ix_products_category_deleted", "category_id", "is_deleted"),
        CheckConstraint("price > 0", name="ck_product_price_positive"),
        CheckConstraint("stock >= 0", name="ck_product_stock_non_negative"),
        CheckConstraint(
            "NOT is_deleted OR deleted_at IS NOT NULL",
            name="ck_product_deleted_at_set",
        ),
    )
