# models/sale_items.py

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, Numeric
from sqlalchemy.orm import relationship

from ecommerce_api.database import Base


class SaleItem(Base):
    __tablename__ = "sale_items"

    sale_id = Column(Integer, ForeignKey("sales.id", ondelete="CASCADE"), primary_key=True)
    product_id = Column(
        Integer,
        ForeignKey("products.id", ondelete="RESTRICT"),
        primary_key=True,
        index=True,
    )

    # Order of the line within its sale
    position = Column(Integer, nullable=False, default=0)

    quantity = Column(Integer, nullable=False)
    # Price snapshot taken when the sale was recorded
    unit_price = Column(Numeric(10, 2), nullable=False)

    sale = relationship("Sale", back_populates="items")
    product = relationship("Product")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_sale_item_quantity_positive"),
        CheckConstraint("unit_price > 0", name="ck_sale_item_unit_price_positive"),
    )

    @property
    def line_total(self):
        return self.unit_price * self.quantity

    @property
    def product_name(self):
        return self.product.name if self.product else None

    @property
    def category_name(self):
        if self.product is None or self.product.category is None:
            return None
        return self.product.category.name
