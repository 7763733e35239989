# schemas/sale.py

from datetime import datetime
from decimal import Decimal
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class SaleItemCreate(BaseModel):
    product_id: int
    quantity: int
    # Accepted for compatibility with older clients; the product's
    # current price is always used instead.
    unit_price: Decimal | None = None


class SaleCreate(BaseModel):
    sale_date: datetime | None = Field(
        None,
        description="Defaults to now; must not be in the future",
    )
    customer_name: str
    customer_email: str
    customer_address: str
    items: List[SaleItemCreate]


class SaleUpdate(SaleCreate):
    sale_date: datetime | None = Field(
        None,
        description="Unchanged when omitted; must not be in the future",
    )


class SaleItemResponse(BaseModel):
    product_id: int
    product_name: str | None
    category_name: str | None
    quantity: int
    unit_price: Decimal
    line_total: Decimal

    model_config = ConfigDict(from_attributes=True)


class SaleResponse(BaseModel):
    id: int
    sale_date: datetime
    customer_name: str
    customer_email: str
    customer_address: str
    total_amount: Decimal
    created_at: datetime
    updated_at: datetime | None
    items: List[SaleItemResponse]

    model_config = ConfigDict(from_attributes=True)


class HistoricalSaleResponse(SaleResponse):
    # total_amount stays the stored original; items_total is only
    # what the visible items add up to.
    items_total: Decimal
    excluded_item_count: int

    @classmethod
    def from_view(cls, view) -> "HistoricalSaleResponse":
        sale = view.sale
        return cls(
            id=sale.id,
            sale_date=sale.sale_date,
            customer_name=sale.customer_name,
            customer_email=sale.customer_email,
            customer_address=sale.customer_address,
            total_amount=sale.total_amount,
            created_at=sale.created_at,
            updated_at=sale.updated_at,
            items=[SaleItemResponse.model_validate(item) for item in view.items],
            items_total=view.items_total,
            excluded_item_count=view.excluded_item_count,
        )


class SalePage(BaseModel):
    data: List[SaleResponse]
    current_page: int
    page_size: int
    total_count: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool
