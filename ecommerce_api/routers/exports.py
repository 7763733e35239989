from datetime import datetime, timezone
from decimal import Decimal
from io import BytesIO

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from openpyxl import Workbook
from sqlalchemy.orm import Session

from ecommerce_api.core.rate_limiter import limiter
from ecommerce_api.database import get_db
from ecommerce_api.services.sale_coordinator import SaleTransactionCoordinator
from ecommerce_api.services.sales_summary import get_sales_summary

router = APIRouter(prefix="/api/exports", tags=["Exports"])


# =========================================================
# EXPORT ROUTES
# =========================================================
@router.get("/sales-summary")
@limiter.limit("10/minute")
def export_sales_summary(request: Request, db: Session = Depends(get_db)):
    today = datetime.now(timezone.utc).date()
    return _build_excel(
        db=db,
        filename=f"sales_summary_{today}.xlsx",
    )


# =========================================================
# EXCEL BUILDER
# =========================================================
def _build_excel(db: Session, filename: str):
    workbook = Workbook()

    # =======================
    # SHEET 1 - SUMMARY
    # =======================
    sheet = workbook.active
    sheet.title = "Sales Summary"

    sheet.append([
        "Product",
        "Category",
        "Quantity Sold",
        "Revenue",
        "Last Sale Date",
    ])

    total_revenue = Decimal("0.00")

    for row in get_sales_summary(db):
        total_revenue += row["total_revenue"]
        sheet.append([
            row["product_name"],
            row["category_name"],
            row["total_quantity_sold"],
            float(row["total_revenue"]),
            row["last_sale_date"].strftime("%Y-%m-%d"),
        ])

    sheet.append([])
    sheet.append(["Total Revenue", "", "", float(total_revenue), ""])

    # =======================
    # SHEET 2 - HISTORICAL SALES
    # Line items as they were on each sale date
    # =======================
    history = workbook.create_sheet(title="Sales History")

    history.append([
        "Date",
        "Sale ID",
        "Customer",
        "Product",
        "Quantity",
        "Unit Price",
        "Line Total",
        "Total Sale Amount",
    ])

    for view in SaleTransactionCoordinator(db).list_historical_sales():
        sale = view.sale
        for item in view.items:
            history.append([
                sale.sale_date.strftime("%Y-%m-%d"),
                sale.id,
                sale.customer_name,
                item.product_name or "Unknown product",
                item.quantity,
                float(item.unit_price),
                float(item.line_total),
                float(sale.total_amount),
            ])

    # =======================
    # RETURN FILE
    # =======================
    output = BytesIO()
    workbook.save(output)
    output.seek(0)

    return StreamingResponse(
        output,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
