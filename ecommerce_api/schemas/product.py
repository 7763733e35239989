from decimal import Decimal
from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=500)

    price: Decimal = Field(
        ...,
        gt=0,
        lt=100_000_000,
        decimal_places=2,
        description="Price must be positive and below 100 million",
    )

    stock: int = Field(0, ge=0, description="Stock quantity cannot be negative")
    is_active: bool = True
    category_id: int = Field(..., gt=0)


class ProductUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    price: Decimal | None = Field(None, gt=0, lt=100_000_000, decimal_places=2)
    stock: int | None = Field(None, ge=0)
    is_active: bool | None = None
    category_id: int | None = Field(None, gt=0)


class CategorySummary(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class ProductResponse(BaseModel):
    id: int
    name: str
    description: str
    price: Decimal
    stock: int
    is_active: bool
    category_id: int
    category: CategorySummary | None
    is_deleted: bool
    deleted_at: datetime | None
    created_at: datetime
    updated_at: datetime | None

    model_config = ConfigDict(from_attributes=True)


class ProductPage(BaseModel):
    data: List[ProductResponse]
    current_page: int
    page_size: int
    total_count: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool
