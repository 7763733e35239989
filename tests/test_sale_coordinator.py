"""
Sale transaction coordinator: atomic sale creation / update
and historical reconstruction against soft-deleted products.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from ecommerce_api.core.exceptions import (
    InsufficientStock,
    NotFound,
    ProductNotFound,
    StorageConflict,
    Unexpected,
    ValidationFailed,
)
from ecommerce_api.models import Product, Sale, SaleItem
from ecommerce_api.schemas.sale import SaleCreate, SaleUpdate
from ecommerce_api.services.inventory_ledger import InventoryLedger
from ecommerce_api.services.sale_coordinator import SaleTransactionCoordinator

COORDINATOR_LOGGER = "ecommerce_api.services.sale_coordinator"


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def sale_data(*items, **overrides) -> SaleCreate:
    payload = {
        "customer_name": "Ada Lovelace",
        "customer_email": "ada@example.com",
        "customer_address": "12 St James's Square, London",
        "items": [{"product_id": product_id, "quantity": quantity} for product_id, quantity in items],
    }
    payload.update(overrides)
    return SaleCreate(**payload)


def stock_of(db, product_id) -> int:
    db.expire_all()
    return db.query(Product.stock).filter(Product.id == product_id).scalar()


@pytest.fixture
def coordinator(db):
    return SaleTransactionCoordinator(db, max_attempts=3, backoff_seconds=0)


class TestCreateSale:
    def test_records_sale_items_and_total(self, db, coordinator, make_product):
        mug = make_product(name="Mug", price="10.50", stock=10)
        pan = make_product(name="Pan", price="25.00", stock=3)

        sale = coordinator.create_sale(sale_data((mug.id, 2), (pan.id, 1)))

        assert sale.id is not None
        assert sale.total_amount == Decimal("46.00")
        assert [(item.product_id, item.quantity) for item in sale.items] == [(mug.id, 2), (pan.id, 1)]
        assert [item.unit_price for item in sale.items] == [Decimal("10.50"), Decimal("25.00")]

    def test_decrements_stock(self, db, coordinator, make_product):
        mug = make_product(stock=10)

        coordinator.create_sale(sale_data((mug.id, 4)))

        assert stock_of(db, mug.id) == 6

    def test_stock_plus_sold_is_conserved(self, db, coordinator, make_product):
        mug = make_product(stock=10)

        coordinator.create_sale(sale_data((mug.id, 3)))
        coordinator.create_sale(sale_data((mug.id, 5)))

        sold = sum(item.quantity for item in db.query(SaleItem).filter(SaleItem.product_id == mug.id))
        assert stock_of(db, mug.id) + sold == 10

    def test_selling_exact_stock_leaves_zero(self, db, coordinator, make_product):
        mug = make_product(stock=3)

        coordinator.create_sale(sale_data((mug.id, 3)))

        assert stock_of(db, mug.id) == 0

    def test_client_unit_price_is_ignored(self, db, coordinator, make_product):
        mug = make_product(price="10.50")
        data = sale_data((mug.id, 2))
        data.items[0].unit_price = Decimal("0.01")

        sale = coordinator.create_sale(data)

        assert sale.items[0].unit_price == Decimal("10.50")
        assert sale.total_amount == Decimal("21.00")

    def test_line_price_is_a_snapshot(self, db, coordinator, make_product):
        mug = make_product(price="10.50")
        sale = coordinator.create_sale(sale_data((mug.id, 1)))

        mug.price = Decimal("99.00")
        db.commit()

        reloaded = coordinator.get_sale(sale.id)
        assert reloaded.items[0].unit_price == Decimal("10.50")
        assert reloaded.total_amount == Decimal("10.50")

    def test_sale_date_defaults_to_now(self, db, make_product):
        now = utc(2025, 3, 1, 12, 0)
        coordinator = SaleTransactionCoordinator(db, clock=lambda: now)
        mug = make_product()

        sale = coordinator.create_sale(sale_data((mug.id, 1)))

        assert sale.sale_date == now

    def test_customer_fields_are_trimmed(self, db, coordinator, make_product):
        mug = make_product()

        sale = coordinator.create_sale(
            sale_data((mug.id, 1), customer_name="  Ada  ", customer_address=" 1 Main St ")
        )

        assert sale.customer_name == "Ada"
        assert sale.customer_address == "1 Main St"


class TestCreateSaleAtomicity:
    def test_insufficient_stock_applies_nothing(self, db, coordinator, make_product):
        mug = make_product(stock=5)
        pan = make_product(name="Pan", stock=1)

        with pytest.raises(InsufficientStock) as exc_info:
            coordinator.create_sale(sale_data((mug.id, 2), (pan.id, 3)))

        assert exc_info.value.product_id == pan.id
        assert stock_of(db, mug.id) == 5
        assert stock_of(db, pan.id) == 1
        assert db.query(Sale).count() == 0
        assert db.query(SaleItem).count() == 0

    def test_unknown_product_applies_nothing(self, db, coordinator, make_product):
        mug = make_product(stock=5)

        with pytest.raises(ProductNotFound) as exc_info:
            coordinator.create_sale(sale_data((mug.id, 1), (999, 1)))

        assert exc_info.value.product_id == 999
        assert stock_of(db, mug.id) == 5
        assert db.query(Sale).count() == 0

    def test_deleted_product_cannot_be_sold(self, db, coordinator, make_product):
        mug = make_product()
        InventoryLedger(db).soft_delete(mug.id)
        db.commit()

        with pytest.raises(ProductNotFound):
            coordinator.create_sale(sale_data((mug.id, 1)))

    def test_inactive_product_cannot_be_sold(self, db, coordinator, make_product):
        mug = make_product(is_active=False)

        with pytest.raises(ValidationFailed):
            coordinator.create_sale(sale_data((mug.id, 1)))
        assert db.query(Sale).count() == 0

    def test_failure_after_partial_apply_rolls_back(self, db, coordinator, make_product):
        mug = make_product(stock=5)
        real_apply = coordinator._apply_items

        def apply_then_fail(*args):
            real_apply(*args)
            raise RuntimeError("connection dropped")

        coordinator._apply_items = apply_then_fail

        with pytest.raises(RuntimeError):
            coordinator.create_sale(sale_data((mug.id, 2)))

        assert stock_of(db, mug.id) == 5
        assert db.query(Sale).count() == 0


class TestCreateSaleValidation:
    def test_empty_items(self, coordinator):
        with pytest.raises(ValidationFailed):
            coordinator.create_sale(sale_data())

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_non_positive_quantity(self, coordinator, make_product, quantity):
        mug = make_product()
        with pytest.raises(ValidationFailed):
            coordinator.create_sale(sale_data((mug.id, quantity)))

    def test_missing_product_id(self, coordinator):
        with pytest.raises(ValidationFailed):
            coordinator.create_sale(sale_data((0, 1)))

    def test_duplicate_products(self, coordinator, make_product):
        mug = make_product()
        with pytest.raises(ValidationFailed):
            coordinator.create_sale(sale_data((mug.id, 1), (mug.id, 2)))

    @pytest.mark.parametrize(
        "field, length",
        [("customer_name", 100), ("customer_address", 200)],
    )
    def test_customer_field_at_limit_is_accepted(self, coordinator, make_product, field, length):
        mug = make_product()
        sale = coordinator.create_sale(sale_data((mug.id, 1), **{field: "x" * length}))
        assert len(getattr(sale, field)) == length

    @pytest.mark.parametrize(
        "field, length",
        [("customer_name", 101), ("customer_address", 201)],
    )
    def test_customer_field_over_limit(self, coordinator, make_product, field, length):
        mug = make_product()
        with pytest.raises(ValidationFailed):
            coordinator.create_sale(sale_data((mug.id, 1), **{field: "x" * length}))

    def test_email_at_limit_is_accepted(self, coordinator, make_product):
        mug = make_product()
        email = "a" * 60 + "@" + "b" * 35 + ".com"
        assert len(email) == 100

        sale = coordinator.create_sale(sale_data((mug.id, 1), customer_email=email))

        assert sale.customer_email == email

    def test_email_over_limit(self, coordinator, make_product):
        mug = make_product()
        email = "a" * 61 + "@" + "b" * 35 + ".com"
        with pytest.raises(ValidationFailed):
            coordinator.create_sale(sale_data((mug.id, 1), customer_email=email))

    @pytest.mark.parametrize("field", ["customer_name", "customer_email", "customer_address"])
    def test_blank_customer_field(self, coordinator, make_product, field):
        mug = make_product()
        with pytest.raises(ValidationFailed):
            coordinator.create_sale(sale_data((mug.id, 1), **{field: "   "}))

    def test_invalid_email(self, coordinator, make_product):
        mug = make_product()
        with pytest.raises(ValidationFailed):
            coordinator.create_sale(sale_data((mug.id, 1), customer_email="not-an-email"))

    def test_future_sale_date(self, db, make_product):
        coordinator = SaleTransactionCoordinator(db, clock=lambda: utc(2025, 1, 1))
        mug = make_product()

        with pytest.raises(ValidationFailed):
            coordinator.create_sale(sale_data((mug.id, 1), sale_date=utc(2025, 1, 2)))

        assert stock_of(db, mug.id) == 10

    def test_validation_happens_before_any_write(self, db, coordinator, make_product):
        mug = make_product(stock=5)

        with pytest.raises(ValidationFailed):
            coordinator.create_sale(sale_data((mug.id, 1), customer_email="broken"))

        assert stock_of(db, mug.id) == 5
        assert db.query(Sale).count() == 0


class TestRetries:
    @staticmethod
    def _locked():
        return OperationalError("UPDATE products", {}, Exception("database is locked"))

    def test_transient_conflict_is_retried(self, db, coordinator, make_product):
        mug = make_product(stock=5)
        real_create = coordinator._create_once
        calls = []

        def flaky(*args):
            calls.append(1)
            if len(calls) < 3:
                raise self._locked()
            return real_create(*args)

        coordinator._create_once = flaky

        sale = coordinator.create_sale(sale_data((mug.id, 2)))

        assert len(calls) == 3
        assert sale.total_amount == Decimal("21.00")
        assert stock_of(db, mug.id) == 3

    def test_exhausted_retries_raise_storage_conflict(self, db, coordinator, make_product):
        mug = make_product(stock=5)
        calls = []

        def always_locked(*args):
            calls.append(1)
            raise self._locked()

        coordinator._create_once = always_locked

        with pytest.raises(StorageConflict):
            coordinator.create_sale(sale_data((mug.id, 2)))

        assert len(calls) == 3
        assert stock_of(db, mug.id) == 5

    def test_business_errors_are_not_retried(self, db, coordinator, make_product):
        mug = make_product(stock=1)
        real_create = coordinator._create_once
        calls = []

        def counting(*args):
            calls.append(1)
            return real_create(*args)

        coordinator._create_once = counting

        with pytest.raises(InsufficientStock):
            coordinator.create_sale(sale_data((mug.id, 2)))

        assert len(calls) == 1

    def test_other_storage_errors_become_unexpected(self, db, coordinator, make_product):
        mug = make_product()

        def broken(*args):
            raise IntegrityError("INSERT INTO sales", {}, Exception("constraint failed"))

        coordinator._create_once = broken

        with pytest.raises(Unexpected):
            coordinator.create_sale(sale_data((mug.id, 1)))


class TestUpdateSale:
    def test_changing_quantity_adjusts_stock(self, db, coordinator, make_product):
        mug = make_product(stock=10)
        sale = coordinator.create_sale(sale_data((mug.id, 3)))

        updated = coordinator.update_sale(sale.id, sale_data((mug.id, 5)))

        assert stock_of(db, mug.id) == 5
        assert updated.total_amount == Decimal("52.50")
        assert [item.quantity for item in updated.items] == [5]

    def test_replacing_products_moves_stock(self, db, coordinator, make_product):
        mug = make_product(stock=10)
        pan = make_product(name="Pan", price="25.00", stock=4)
        sale = coordinator.create_sale(sale_data((mug.id, 3)))

        updated = coordinator.update_sale(sale.id, sale_data((pan.id, 2)))

        assert stock_of(db, mug.id) == 10
        assert stock_of(db, pan.id) == 2
        assert [item.product_id for item in updated.items] == [pan.id]
        assert updated.total_amount == Decimal("50.00")

    def test_released_stock_counts_toward_new_quantity(self, db, coordinator, make_product):
        mug = make_product(stock=4)
        sale = coordinator.create_sale(sale_data((mug.id, 4)))

        coordinator.update_sale(sale.id, sale_data((mug.id, 4), customer_name="Grace Hopper"))

        assert stock_of(db, mug.id) == 0

    def test_failed_update_leaves_sale_untouched(self, db, coordinator, make_product):
        mug = make_product(stock=5)
        sale = coordinator.create_sale(sale_data((mug.id, 2)))

        with pytest.raises(InsufficientStock):
            coordinator.update_sale(sale.id, sale_data((mug.id, 9)))

        assert stock_of(db, mug.id) == 3
        reloaded = coordinator.get_sale(sale.id)
        assert [item.quantity for item in reloaded.items] == [2]
        assert reloaded.total_amount == Decimal("21.00")

    def test_omitted_date_keeps_the_original(self, db, coordinator, make_product):
        mug = make_product(stock=10)
        sale = coordinator.create_sale(sale_data((mug.id, 1), sale_date=utc(2024, 1, 1)))

        update = SaleUpdate(**sale_data((mug.id, 2), customer_name="Grace Hopper").model_dump())
        assert update.sale_date is None
        updated = coordinator.update_sale(sale.id, update)

        assert updated.sale_date == utc(2024, 1, 1)
        assert updated.customer_name == "Grace Hopper"

    def test_explicit_date_is_applied(self, db, coordinator, make_product):
        mug = make_product(stock=10)
        sale = coordinator.create_sale(sale_data((mug.id, 1), sale_date=utc(2024, 1, 1)))

        updated = coordinator.update_sale(sale.id, sale_data((mug.id, 1), sale_date=utc(2024, 2, 1)))

        assert updated.sale_date == utc(2024, 2, 1)

    def test_future_date_is_rejected(self, db, make_product):
        coordinator = SaleTransactionCoordinator(db, clock=lambda: utc(2025, 1, 1))
        mug = make_product(stock=10)
        sale = coordinator.create_sale(sale_data((mug.id, 1), sale_date=utc(2024, 1, 1)))

        with pytest.raises(ValidationFailed):
            coordinator.update_sale(sale.id, sale_data((mug.id, 1), sale_date=utc(2025, 1, 2)))

        assert coordinator.get_sale(sale.id).sale_date == utc(2024, 1, 1)

    def test_historical_view_follows_the_kept_date(self, db, coordinator, make_product):
        mug = make_product(name="Mug", stock=10)
        lamp = make_product(name="Lamp", price="5.00", stock=10)
        sale = coordinator.create_sale(sale_data((mug.id, 1), sale_date=utc(2024, 1, 1)))

        coordinator.update_sale(sale.id, SaleUpdate(**sale_data((mug.id, 1), (lamp.id, 1)).model_dump()))
        InventoryLedger(db).soft_delete(lamp.id, at=utc(2024, 6, 1))
        db.commit()

        view = coordinator.get_historical_sale(sale.id)
        assert [item.product_name for item in view.items] == ["Mug", "Lamp"]
        assert view.excluded_item_count == 0

    def test_releases_every_old_line(self, db, coordinator, make_product):
        mug = make_product(stock=10)
        pan = make_product(name="Pan", price="25.00", stock=10)
        sale = coordinator.create_sale(sale_data((pan.id, 4), (mug.id, 3)))

        coordinator.update_sale(sale.id, sale_data((mug.id, 1)))

        assert stock_of(db, mug.id) == 9
        assert stock_of(db, pan.id) == 10

    def test_unknown_sale(self, coordinator, make_product):
        mug = make_product()
        with pytest.raises(NotFound):
            coordinator.update_sale(404, sale_data((mug.id, 1)))


class TestHistoricalSales:
    @pytest.fixture
    def history(self, db, coordinator, make_product):
        """Two sales around a product retired on 2024-06-01."""
        mug = make_product(name="Mug", price="10.00", stock=20)
        lamp = make_product(name="Lamp", price="5.00", stock=20)

        january = coordinator.create_sale(
            sale_data((mug.id, 2), (lamp.id, 1), sale_date=utc(2024, 1, 1))
        )
        july = coordinator.create_sale(
            sale_data((mug.id, 1), (lamp.id, 1), sale_date=utc(2024, 7, 1))
        )

        InventoryLedger(db).soft_delete(lamp.id, at=utc(2024, 6, 1))
        db.commit()

        return {"mug": mug, "lamp": lamp, "january": january, "july": july}

    def test_sale_before_deletion_keeps_all_items(self, coordinator, history):
        view = coordinator.get_historical_sale(history["january"].id)

        assert [item.product_id for item in view.items] == [history["mug"].id, history["lamp"].id]
        assert view.excluded_item_count == 0
        assert view.items_total == Decimal("25.00")
        assert view.sale.total_amount == Decimal("25.00")

    def test_deleted_product_line_stays_resolvable(self, coordinator, history):
        view = coordinator.get_historical_sale(history["january"].id)

        lamp_line = view.items[1]
        assert lamp_line.product_name == "Lamp"
        assert lamp_line.category_name == "Kitchen"
        assert lamp_line.product.is_deleted is True

    def test_sale_after_deletion_drops_the_line(self, coordinator, history, caplog):
        with caplog.at_level(logging.WARNING, logger=COORDINATOR_LOGGER):
            view = coordinator.get_historical_sale(history["july"].id)

        assert [item.product_id for item in view.items] == [history["mug"].id]
        assert view.excluded_item_count == 1
        assert "Data integrity" in caplog.text

    def test_stored_total_is_not_reconciled(self, coordinator, history):
        view = coordinator.get_historical_sale(history["july"].id)

        assert view.sale.total_amount == Decimal("15.00")
        assert view.items_total == Decimal("10.00")

    def test_sale_at_deletion_instant_drops_the_line(self, db, coordinator, make_product):
        lamp = make_product(name="Lamp", price="5.00")
        sale = coordinator.create_sale(sale_data((lamp.id, 1), sale_date=utc(2024, 6, 1)))
        InventoryLedger(db).soft_delete(lamp.id, at=utc(2024, 6, 1))
        db.commit()

        view = coordinator.get_historical_sale(sale.id)

        assert view.items == []
        assert view.excluded_item_count == 1

    def test_reconstruction_is_read_only(self, db, coordinator, history):
        sale_id = history["july"].id

        first = coordinator.get_historical_sale(sale_id)
        second = coordinator.get_historical_sale(sale_id)

        assert [item.product_id for item in first.items] == [item.product_id for item in second.items]
        assert db.query(SaleItem).filter(SaleItem.sale_id == sale_id).count() == 2
        assert len(coordinator.get_sale(sale_id).items) == 2

    def test_plain_read_shows_every_line(self, coordinator, history):
        sale = coordinator.get_sale(history["july"].id)
        assert len(sale.items) == 2

    def test_listing_is_ordered_by_sale_date(self, coordinator, history):
        views = coordinator.list_historical_sales()

        assert [view.sale.id for view in views] == [history["january"].id, history["july"].id]
        assert [view.excluded_item_count for view in views] == [0, 1]

    def test_unknown_sale(self, coordinator):
        with pytest.raises(NotFound):
            coordinator.get_historical_sale(404)
