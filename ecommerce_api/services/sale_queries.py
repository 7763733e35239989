from datetime import datetime

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.orm import Session, joinedload, selectinload

from ecommerce_api.core.exceptions import ValidationFailed
from ecommerce_api.core.pagination import (
    clamp_page,
    clamp_page_size,
    paginate,
    sort_column,
    sort_direction_is_desc,
)
from ecommerce_api.models.mixins import as_utc
from ecommerce_api.models.products import Product
from ecommerce_api.models.sale_items import SaleItem
from ecommerce_api.models.sales import Sale

SALE_MAX_PAGE_SIZE = 100

SALE_SORT_COLUMNS = {
    "saledate": Sale.sale_date,
    "totalamount": Sale.total_amount,
    "customername": Sale.customer_name,
}


def list_sales(
    db: Session,
    page: int = 1,
    page_size: int = 10,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    customer_name: str | None = None,
    customer_email: str | None = None,
    sort_by: str | None = None,
    sort_direction: str | None = None,
) -> dict:
    start_date = as_utc(start_date)
    end_date = as_utc(end_date)

    if start_date and end_date and start_date > end_date:
        raise ValidationFailed("Start date must be before or equal to end date.")

    if customer_name and len(customer_name) > 100:
        raise ValidationFailed("Customer name must not exceed 100 characters.")

    if customer_email and customer_email.strip():
        try:
            if len(customer_email) > 100:
                raise EmailNotValidError("too long")
            validate_email(customer_email.strip(), check_deliverability=False)
        except EmailNotValidError:
            raise ValidationFailed(
                "Customer email must be valid and no longer than 100 characters."
            )

    descending = sort_direction_is_desc(sort_direction)
    column = sort_column(sort_by, SALE_SORT_COLUMNS, Sale.sale_date)

    query = db.query(Sale).options(
        selectinload(Sale.items)
        .joinedload(SaleItem.product)
        .joinedload(Product.category)
    )

    if start_date:
        query = query.filter(Sale.sale_date >= start_date)
    if end_date:
        query = query.filter(Sale.sale_date <= end_date)
    if customer_name and customer_name.strip():
        query = query.filter(Sale.customer_name.ilike(f"%{customer_name.strip()}%"))
    if customer_email and customer_email.strip():
        query = query.filter(Sale.customer_email.ilike(customer_email.strip()))

    query = query.order_by(column.desc() if descending else column.asc(), Sale.id)

    return paginate(
        query,
        clamp_page(page),
        clamp_page_size(page_size, SALE_MAX_PAGE_SIZE),
    )
