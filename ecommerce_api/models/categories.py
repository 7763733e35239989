# ecommerce_api/models/categories.py

from sqlalchemy import CheckConstraint, Column, Integer, String
from sqlalchemy.orm import relationship

from ecommerce_api.database import Base
from ecommerce_api.models.mixins import SoftDeleteMixin, TimestampMixin


class Category(SoftDeleteMixin, TimestampMixin, Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, index=True, nullable=False)
    description = Column(String(500), nullable=False, default="")

    products = relationship("Product", back_populates="category")

    __table_args__ = (
        CheckConstraint(
            "NOT is_deleted OR deleted_at IS NOT NULL",
            name="ck_category_deleted_at_set",
        ),
    )
