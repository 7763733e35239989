# =========================================================
# SALE TRANSACTION COORDINATOR
#
# - create / update a sale, its line items and the matching
#   stock movements as ONE unit of work (all or nothing)
# - rebuild historical sales against the catalog as it was
#   at each sale's date
#
# The coordinator is bound to the session it is given and
# never shares it with other requests.
# =========================================================

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Callable, TypeVar

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from ecommerce_api.core.config import settings
from ecommerce_api.core.exceptions import (
    AppException,
    InsufficientStock,
    NotFound,
    ProductNotFound,
    StorageConflict,
    Unexpected,
    ValidationFailed,
)
from ecommerce_api.models.mixins import as_utc, utcnow
from ecommerce_api.models.products import Product
from ecommerce_api.models.sale_items import SaleItem
from ecommerce_api.models.sales import Sale
from ecommerce_api.schemas.sale import SaleCreate, SaleUpdate
from ecommerce_api.services.inventory_ledger import InventoryLedger, is_available_at

logger = logging.getLogger(__name__)

T = TypeVar("T")

CUSTOMER_FIELD_LIMITS = {
    "customer_name": ("Customer name", 100),
    "customer_email": ("Customer email", 100),
    "customer_address": ("Customer address", 200),
}


@dataclass
class HistoricalSale:
    """A sale as it looked at its own sale date.

    ``sale.total_amount`` is the stored, authoritative total. It is not
    reconciled with the visible items.
    """

    sale: Sale
    items: list[SaleItem] = field(default_factory=list)
    excluded_item_count: int = 0

    @property
    def items_total(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal("0.00"))


class SaleTransactionCoordinator:
    def __init__(
        self,
        db: Session,
        max_attempts: int | None = None,
        backoff_seconds: float | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.ledger = InventoryLedger(db)
        self.max_attempts = max_attempts if max_attempts is not None else settings.SALE_CREATE_MAX_ATTEMPTS
        self.backoff_seconds = (
            backoff_seconds if backoff_seconds is not None else settings.SALE_RETRY_BACKOFF_SECONDS
        )
        self.clock = clock

    # =====================================================
    # CREATE / UPDATE
    # =====================================================
    def create_sale(self, sale_data: SaleCreate) -> Sale:
        sale_date = self._validate(sale_data) or self.clock()

        sale_id = self._run_unit_of_work(lambda: self._create_once(sale_data, sale_date))

        sale = self.get_sale(sale_id)
        logger.info(
            "Sale %s created: total=%s items=%s",
            sale.id,
            sale.total_amount,
            len(sale.items),
        )
        return sale

    def update_sale(self, sale_id: int, sale_data: SaleUpdate) -> Sale:
        sale_date = self._validate(sale_data)

        self._run_unit_of_work(lambda: self._update_once(sale_id, sale_data, sale_date))

        sale = self.get_sale(sale_id)
        logger.info("Sale %s updated: total=%s", sale.id, sale.total_amount)
        return sale

    def _create_once(self, sale_data: SaleCreate, sale_date: datetime) -> int:
        products = self._load_and_check(sale_data)

        sale = Sale(
            sale_date=sale_date,
            customer_name=sale_data.customer_name.strip(),
            customer_email=sale_data.customer_email.strip(),
            customer_address=sale_data.customer_address.strip(),
            total_amount=Decimal("0.00"),
        )
        self.db.add(sale)

        sale.total_amount = self._apply_items(sale, sale_data, products)
        self.db.flush()

        return sale.id

    def _update_once(self, sale_id: int, sale_data: SaleUpdate, sale_date: datetime | None) -> int:
        sale = (
            self.db.query(Sale)
            .options(selectinload(Sale.items))
            .filter(Sale.id == sale_id)
            .with_for_update()
            .first()
        )
        if sale is None:
            raise NotFound(f"Sale {sale_id} not found.")

        # Put the old quantities back before checking the new ones.
        # Id order, same as the row locks taken by get_products.
        for item in sorted(sale.items, key=lambda item: item.product_id):
            self.ledger.release_stock(item.product_id, item.quantity)
        sale.items.clear()
        self.db.flush()

        products = self._load_and_check(sale_data)

        if sale_date is not None:
            sale.sale_date = sale_date
        sale.customer_name = sale_data.customer_name.strip()
        sale.customer_email = sale_data.customer_email.strip()
        sale.customer_address = sale_data.customer_address.strip()
        sale.total_amount = self._apply_items(sale, sale_data, products)
        self.db.flush()

        return sale.id

    def _load_and_check(self, sale_data: SaleCreate) -> dict[int, Product]:
        products = self.ledger.get_products(
            (item.product_id for item in sale_data.items),
            lock=True,
        )

        for item in sale_data.items:
            product = products.get(item.product_id)
            if product is None:
                raise ProductNotFound(item.product_id)
            if not product.is_active:
                raise ValidationFailed(f"Product {product.id} is not active.")

        # All items are checked before anything is applied
        for item in sale_data.items:
            product = products[item.product_id]
            if product.stock < item.quantity:
                raise InsufficientStock(product.id, item.quantity, product.stock)

        return products

    def _apply_items(self, sale: Sale, sale_data: SaleCreate, products: dict[int, Product]) -> Decimal:
        total_amount = Decimal("0.00")

        for position, item in enumerate(sale_data.items):
            product = products[item.product_id]
            unit_price = product.price

            self.ledger.reserve_stock(product.id, item.quantity)

            sale.items.append(
                SaleItem(
                    product_id=product.id,
                    position=position,
                    quantity=item.quantity,
                    unit_price=unit_price,
                )
            )
            total_amount += unit_price * item.quantity

        return total_amount

    def _run_unit_of_work(self, work: Callable[[], T]) -> T:
        """Run ``work`` and commit; roll back on any failure.

        Lock / serialization failures are retried with exponential
        backoff; once attempts run out they surface as StorageConflict.
        """
        attempts = max(1, self.max_attempts)

        for attempt in range(1, attempts + 1):
            try:
                result = work()
                self.db.commit()
                self.db.expire_all()
                return result

            except AppException:
                self.db.rollback()
                raise

            except OperationalError as exc:
                self.db.rollback()
                if attempt == attempts:
                    logger.warning("Sale transaction conflicted %s times, giving up: %s", attempts, exc)
                    raise StorageConflict() from exc

                delay = self.backoff_seconds * (2 ** (attempt - 1))
                logger.warning(
                    "Sale transaction conflict (attempt %s/%s), retrying in %.3fs",
                    attempt,
                    attempts,
                    delay,
                )
                time.sleep(delay)

            except SQLAlchemyError as exc:
                self.db.rollback()
                logger.exception("Sale transaction failed")
                raise Unexpected("Unable to complete sale") from exc

            except BaseException:
                self.db.rollback()
                raise

        raise StorageConflict()

    def _validate(self, sale_data: SaleCreate) -> datetime | None:
        if not sale_data.items:
            raise ValidationFailed("A sale must contain at least one item.")

        for item in sale_data.items:
            if item.product_id is None or item.product_id <= 0:
                raise ValidationFailed("Product is required for each sale item.")
            if item.quantity is None or item.quantity <= 0:
                raise ValidationFailed("Quantity must be greater than 0.")

        product_ids = [item.product_id for item in sale_data.items]
        if len(product_ids) != len(set(product_ids)):
            raise ValidationFailed("Duplicate products in sale are not allowed.")

        for attr, (label, max_length) in CUSTOMER_FIELD_LIMITS.items():
            value = getattr(sale_data, attr)
            if value is None or not value.strip():
                raise ValidationFailed(f"{label} is required.")
            if len(value.strip()) > max_length:
                raise ValidationFailed(f"{label} must not exceed {max_length} characters.")

        try:
            validate_email(sale_data.customer_email.strip(), check_deliverability=False)
        except EmailNotValidError:
            raise ValidationFailed("Customer email must be a valid email address.")

        sale_date = as_utc(sale_data.sale_date)
        if sale_date is not None and sale_date > self.clock():
            raise ValidationFailed("Sale date cannot be in the future.")

        return sale_date

    # =====================================================
    # READS
    # =====================================================
    def _sales_query(self):
        # No soft-delete filter on products here: line items must keep
        # pointing at products that were retired after the sale.
        return self.db.query(Sale).options(
            selectinload(Sale.items)
            .joinedload(SaleItem.product)
            .joinedload(Product.category)
        )

    def get_sale(self, sale_id: int) -> Sale:
        sale = self._sales_query().filter(Sale.id == sale_id).first()
        if sale is None:
            raise NotFound(f"Sale {sale_id} not found.")
        return sale

    def get_historical_sale(self, sale_id: int) -> HistoricalSale:
        return self._reconstruct(self.get_sale(sale_id))

    def list_historical_sales(self) -> list[HistoricalSale]:
        sales = self._sales_query().order_by(Sale.sale_date, Sale.id).all()
        return [self._reconstruct(sale) for sale in sales]

    def _reconstruct(self, sale: Sale) -> HistoricalSale:
        view = HistoricalSale(sale=sale)

        for item in sorted(sale.items, key=lambda item: item.product_id):
            if item.product is not None and is_available_at(item.product, sale.sale_date):
                view.items.append(item)
                continue

            view.excluded_item_count += 1
            logger.warning(
                "Data integrity: sale %s (dated %s) references product %s deleted at %s; "
                "line excluded from historical view",
                sale.id,
                sale.sale_date,
                item.product_id,
                item.product.deleted_at if item.product is not None else None,
            )

        return view
