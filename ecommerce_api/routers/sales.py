# =========================================================
# SALES ROUTER
#
# - create / update go through the sale transaction
#   coordinator (one atomic unit of work per request)
# - "with-deleted-products" routes return sales as they
#   were at their sale date, including line items whose
#   products were retired afterwards
# =========================================================

from datetime import datetime

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from ecommerce_api.core.config import settings
from ecommerce_api.core.rate_limiter import limiter
from ecommerce_api.database import get_db
from ecommerce_api.schemas.sale import (
    HistoricalSaleResponse,
    SaleCreate,
    SalePage,
    SaleResponse,
    SaleUpdate,
)
from ecommerce_api.services.sale_coordinator import SaleTransactionCoordinator
from ecommerce_api.services.sale_queries import list_sales as query_sales

router = APIRouter(prefix="/api/sales", tags=["Sales"])


# =========================================================
# CREATE SALE
# =========================================================
@router.post("", response_model=SaleResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.SALES_RATE_LIMIT)
def create_sale(
    request: Request,
    sale_data: SaleCreate,
    db: Session = Depends(get_db),
):
    return SaleTransactionCoordinator(db).create_sale(sale_data)


# =========================================================
# LIST SALES
# =========================================================
@router.get("", response_model=SalePage)
def list_sales(
    db: Session = Depends(get_db),
    page: int = Query(1),
    page_size: int = Query(10),
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
    customer_name: str | None = Query(None),
    customer_email: str | None = Query(None),
    sort_by: str | None = Query(None),
    sort_direction: str | None = Query(None),
):
    return query_sales(
        db,
        page=page,
        page_size=page_size,
        start_date=start_date,
        end_date=end_date,
        customer_name=customer_name,
        customer_email=customer_email,
        sort_by=sort_by,
        sort_direction=sort_direction,
    )


# =========================================================
# HISTORICAL VIEWS
# Declared before the "/{sale_id}" routes
# =========================================================
@router.get("/with-deleted-products", response_model=list[HistoricalSaleResponse])
def list_historical_sales(db: Session = Depends(get_db)):
    views = SaleTransactionCoordinator(db).list_historical_sales()
    return [HistoricalSaleResponse.from_view(view) for view in views]


@router.get("/{sale_id}/with-deleted-products", response_model=HistoricalSaleResponse)
def get_historical_sale(sale_id: int, db: Session = Depends(get_db)):
    view = SaleTransactionCoordinator(db).get_historical_sale(sale_id)
    return HistoricalSaleResponse.from_view(view)


# =========================================================
# GET / UPDATE SINGLE SALE
# =========================================================
@router.get("/{sale_id}", response_model=SaleResponse)
def get_sale(sale_id: int, db: Session = Depends(get_db)):
    return SaleTransactionCoordinator(db).get_sale(sale_id)


@router.put("/{sale_id}", response_model=SaleResponse)
@limiter.limit(settings.SALES_RATE_LIMIT)
def update_sale(
    request: Request,
    sale_id: int,
    sale_data: SaleUpdate,
    db: Session = Depends(get_db),
):
    return SaleTransactionCoordinator(db).update_sale(sale_id, sale_data)
