# =========================================================
# INVENTORY LEDGER
#
# Single source of truth for product stock and soft-delete
# state. Every method works inside the caller's session and
# transaction; nothing here commits.
# =========================================================

import logging
from datetime import datetime
from typing import Iterable

from sqlalchemy import update
from sqlalchemy.orm import Session, joinedload

from ecommerce_api.core.exceptions import InsufficientStock, ProductNotFound, ValidationFailed
from ecommerce_api.models.mixins import as_utc, utcnow
from ecommerce_api.models.products import Product

logger = logging.getLogger(__name__)


def is_available_at(product: Product, point_in_time: datetime) -> bool:
    """True if the product existed (was not yet soft-deleted) at ``point_in_time``.

    This is the only availability check used when historical data meets
    soft-deleted products.
    """
    if not product.is_deleted:
        return True
    deleted_at = as_utc(product.deleted_at)
    if deleted_at is None:
        return False
    return deleted_at > as_utc(point_in_time)


class InventoryLedger:
    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int, include_deleted: bool = False) -> Product:
        query = (
            self.db.query(Product)
            .options(joinedload(Product.category))
            .filter(Product.id == product_id)
        )
        if not include_deleted:
            query = query.filter(Product.is_deleted.is_(False))

        product = query.first()
        if product is None:
            raise ProductNotFound(product_id)
        return product

    def get_products(self, product_ids: Iterable[int], lock: bool = False) -> dict[int, Product]:
        """Batch-load live products by id. Missing ids are simply absent from the result."""
        ids = list(set(product_ids))
        if not ids:
            return {}

        query = self.db.query(Product).filter(
            Product.id.in_(ids),
            Product.is_deleted.is_(False),
        )
        if lock:
            query = query.order_by(Product.id).with_for_update().populate_existing()

        return {product.id: product for product in query.all()}

    def reserve_stock(self, product_id: int, quantity: int) -> None:
        """Atomically take ``quantity`` units of stock.

        The decrement is a single guarded UPDATE, so the stock check is
        re-done by the database at write time. If no row matches, the
        stock was consumed concurrently (or the product vanished).
        """
        if quantity is None or quantity <= 0:
            raise ValidationFailed("Quantity must be greater than 0.")

        result = self.db.execute(
            update(Product)
            .where(
                Product.id == product_id,
                Product.is_deleted.is_(False),
                Product.stock >= quantity,
            )
            .values(stock=Product.stock - quantity, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 1:
            return

        current = (
            self.db.query(Product.stock)
            .filter(Product.id == product_id, Product.is_deleted.is_(False))
            .scalar()
        )
        if current is None:
            raise ProductNotFound(product_id)

        logger.warning(
            "Stock reservation rejected: product=%s requested=%s available=%s",
            product_id,
            quantity,
            current,
        )
        raise InsufficientStock(product_id, quantity, current)

    def release_stock(self, product_id: int, quantity: int) -> None:
        """Give back ``quantity`` units, e.g. when a sale's items are replaced."""
        if quantity is None or quantity <= 0:
            raise ValidationFailed("Quantity must be greater than 0.")

        self.db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(stock=Product.stock + quantity, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )

    def soft_delete(self, product_id: int, at: datetime | None = None) -> Product:
        product = self.get_product(product_id)
        product.soft_delete(at)
        self.db.flush()
        logger.info("Product %s soft-deleted at %s", product.id, product.deleted_at)
        return product

    def restore(self, product_id: int) -> Product:
        product = self.get_product(product_id, include_deleted=True)
        if not product.is_deleted:
            raise ValidationFailed(f"Product {product_id} is not deleted.")
        product.restore()
        self.db.flush()
        logger.info("Product %s restored", product.id)
        return product
