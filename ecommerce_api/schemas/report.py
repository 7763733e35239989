# schemas/report.py

from datetime import datetime
from decimal import Decimal
from typing import List

from pydantic import BaseModel


class SalesSummaryRow(BaseModel):
    product_id: int
    product_name: str
    category_name: str
    total_quantity_sold: int
    total_revenue: Decimal
    last_sale_date: datetime


class SalesSummaryResponse(BaseModel):
    total_products: int
    total_revenue: Decimal
    results: List[SalesSummaryRow]
