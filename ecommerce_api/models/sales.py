# models/sales.py

from sqlalchemy import Column, Index, Integer, Numeric, String
from sqlalchemy.orm import relationship

from ecommerce_api.database import Base
from ecommerce_api.models.mixins import TimestampMixin, UTCDateTime


class Sale(TimestampMixin, Base):
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True, index=True)

    sale_date = Column(UTCDateTime, nullable=False, index=True)

    customer_name = Column(String(100), nullable=False)
    customer_email = Column(String(100), nullable=False, index=True)
    customer_address = Column(String(200), nullable=False)

    # Always derived from the items, never taken from input
    total_amount = Column(Numeric(12, 2), nullable=False)

    items = relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleItem.position",
    )

    __table_args__ = (
        Index("ix_sales_customer_name", "customer_name"),
    )
