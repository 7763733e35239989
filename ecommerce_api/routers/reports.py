# =========================================================
# REPORTS ROUTER
# Sales summary per product, from stored line prices
# =========================================================

from decimal import Decimal

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ecommerce_api.database import get_db
from ecommerce_api.schemas.report import SalesSummaryResponse
from ecommerce_api.services.sales_summary import get_sales_summary

router = APIRouter(prefix="/api/reports", tags=["Reports"])


@router.get("/sales-summary", response_model=SalesSummaryResponse)
def sales_summary(db: Session = Depends(get_db)):
    rows = get_sales_summary(db)

    total_revenue = sum((row["total_revenue"] for row in rows), Decimal("0.00"))

    return {
        "total_products": len(rows),
        "total_revenue": total_revenue,
        "results": rows,
    }
