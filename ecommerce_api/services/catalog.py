# =========================================================
# CATALOG SERVICE
# Products and categories: CRUD, filtering, soft delete.
# Soft-deleted rows are hidden unless explicitly requested.
# =========================================================

import logging
from decimal import Decimal

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, contains_eager, joinedload

from ecommerce_api.core.exceptions import DuplicateEntity, NotFound, ValidationFailed
from ecommerce_api.core.pagination import (
    clamp_page,
    clamp_page_size,
    paginate,
    sort_column,
    sort_direction_is_desc,
)
from ecommerce_api.models.categories import Category
from ecommerce_api.models.products import Product
from ecommerce_api.schemas.category import CategoryCreate, CategoryUpdate
from ecommerce_api.schemas.product import ProductCreate, ProductUpdate
from ecommerce_api.services.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)

PRODUCT_MAX_PAGE_SIZE = 100
CATEGORY_MAX_PAGE_SIZE = 32
MAX_SEARCH_LENGTH = 100

PRODUCT_SORT_COLUMNS = {
    "name": Product.name,
    "price": Product.price,
    "stock": Product.stock,
    "createdat": Product.created_at,
    "category": Category.name,
}

CATEGORY_SORT_COLUMNS = {
    "name": Category.name,
    "createdat": Category.created_at,
}


def _check_search(search: str | None) -> str | None:
    if search is None or not search.strip():
        return None
    if len(search) > MAX_SEARCH_LENGTH:
        raise ValidationFailed(f"Search term must not exceed {MAX_SEARCH_LENGTH} characters.")
    return search.strip()


# =========================================================
# CATEGORIES
# =========================================================
def get_category(db: Session, category_id: int, include_deleted: bool = False) -> Category:
    query = db.query(Category).filter(Category.id == category_id)
    if not include_deleted:
        query = query.filter(Category.is_deleted.is_(False))

    category = query.first()
    if category is None:
        raise NotFound(f"Category {category_id} not found.")
    return category


def get_category_by_name(db: Session, name: str) -> Category:
    category = (
        db.query(Category)
        .filter(
            func.lower(Category.name) == name.strip().lower(),
            Category.is_deleted.is_(False),
        )
        .first()
    )
    if category is None:
        raise NotFound(f"Category '{name}' not found.")
    return category


def _ensure_category_name_free(db: Session, name: str, exclude_id: int | None = None):
    query = db.query(Category).filter(func.lower(Category.name) == name.strip().lower())
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    if query.first():
        raise DuplicateEntity("Category with this name already exists")


def create_category(db: Session, category_data: CategoryCreate) -> Category:
    name = category_data.name.strip()
    if not name:
        raise ValidationFailed("Category name is required.")

    _ensure_category_name_free(db, name)

    category = Category(name=name, description=category_data.description.strip())
    db.add(category)
    db.commit()
    db.refresh(category)

    logger.info("Category %s created: %s", category.id, category.name)
    return category


def update_category(db: Session, category_id: int, category_data: CategoryUpdate) -> Category:
    category = get_category(db, category_id)

    if category_data.name is not None:
        name = category_data.name.strip()
        if not name:
            raise ValidationFailed("Category name is required.")
        _ensure_category_name_free(db, name, exclude_id=category.id)
        category.name = name

    if category_data.description is not None:
        category.description = category_data.description.strip()

    db.commit()
    db.refresh(category)
    return category


def list_categories(
    db: Session,
    page: int = 1,
    page_size: int = 10,
    search: str | None = None,
    sort_by: str | None = None,
    sort_direction: str | None = None,
    include_deleted: bool = False,
) -> dict:
    search = _check_search(search)
    descending = sort_direction_is_desc(sort_direction)
    column = sort_column(sort_by, CATEGORY_SORT_COLUMNS, Category.id)

    query = db.query(Category)
    if not include_deleted:
        query = query.filter(Category.is_deleted.is_(False))
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Category.name.ilike(pattern), Category.description.ilike(pattern)))

    query = query.order_by(column.desc() if descending else column.asc(), Category.id)

    return paginate(
        query,
        clamp_page(page),
        clamp_page_size(page_size, CATEGORY_MAX_PAGE_SIZE),
    )


def delete_category(db: Session, category_id: int) -> None:
    category = get_category(db, category_id)
    category.soft_delete()
    db.commit()
    logger.info("Category %s soft-deleted", category.id)


def list_deleted_categories(db: Session) -> list[Category]:
    return (
        db.query(Category)
        .filter(Category.is_deleted.is_(True))
        .order_by(Category.deleted_at.desc(), Category.id)
        .all()
    )


def restore_category(db: Session, category_id: int) -> Category:
    category = get_category(db, category_id, include_deleted=True)
    if not category.is_deleted:
        raise ValidationFailed(f"Category {category_id} is not deleted.")

    category.restore()
    db.commit()
    db.refresh(category)
    logger.info("Category %s restored", category.id)
    return category


# =========================================================
# PRODUCTS
# =========================================================
def get_product(db: Session, product_id: int, include_deleted: bool = False) -> Product:
    return InventoryLedger(db).get_product(product_id, include_deleted=include_deleted)


def create_product(db: Session, product_data: ProductCreate) -> Product:
    name = product_data.name.strip()
    if not name:
        raise ValidationFailed("Product name is required.")

    category = get_category(db, product_data.category_id)

    product = Product(
        name=name,
        description=product_data.description.strip(),
        price=product_data.price,
        stock=product_data.stock,
        is_active=product_data.is_active,
        category_id=category.id,
    )

    db.add(product)
    db.commit()

    logger.info("Product %s created: %s", product.id, product.name)
    return get_product(db, product.id)


def update_product(db: Session, product_id: int, product_data: ProductUpdate) -> Product:
    product = get_product(db, product_id)

    if product_data.name is not None:
        if not product_data.name.strip():
            raise ValidationFailed("Product name is required.")
        product.name = product_data.name.strip()

    if product_data.description is not None:
        product.description = product_data.description.strip()

    if product_data.price is not None:
        product.price = product_data.price

    if product_data.stock is not None:
        product.stock = product_data.stock

    if product_data.is_active is not None:
        product.is_active = product_data.is_active

    if product_data.category_id is not None:
        product.category_id = get_category(db, product_data.category_id).id

    db.commit()
    return get_product(db, product.id)


def list_products(
    db: Session,
    page: int = 1,
    page_size: int = 10,
    search: str | None = None,
    category_id: int | None = None,
    min_price: Decimal | None = None,
    max_price: Decimal | None = None,
    sort_by: str | None = None,
    sort_direction: str | None = None,
    include_deleted: bool = False,
) -> dict:
    search = _check_search(search)
    if min_price is not None and min_price < 0:
        raise ValidationFailed("Minimum price must be zero or greater.")
    if max_price is not None and max_price < 0:
        raise ValidationFailed("Maximum price must be zero or greater.")
    if min_price is not None and max_price is not None and min_price > max_price:
        raise ValidationFailed("Minimum price cannot be greater than maximum price.")

    descending = sort_direction_is_desc(sort_direction)
    column = sort_column(sort_by, PRODUCT_SORT_COLUMNS, Product.id)

    query = (
        db.query(Product)
        .join(Category, Product.category_id == Category.id)
        .options(contains_eager(Product.category))
    )

    if not include_deleted:
        query = query.filter(Product.is_deleted.is_(False))
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    if min_price is not None:
        query = query.filter(Product.price >= min_price)
    if max_price is not None:
        query = query.filter(Product.price <= max_price)

    query = query.order_by(column.desc() if descending else column.asc(), Product.id)

    return paginate(
        query,
        clamp_page(page),
        clamp_page_size(page_size, PRODUCT_MAX_PAGE_SIZE),
    )


def list_products_by_category(db: Session, category_id: int) -> list[Product]:
    get_category(db, category_id)

    return (
        db.query(Product)
        .options(joinedload(Product.category))
        .filter(
            Product.category_id == category_id,
            Product.is_deleted.is_(False),
        )
        .order_by(Product.name, Product.id)
        .all()
    )


def delete_product(db: Session, product_id: int) -> None:
    InventoryLedger(db).soft_delete(product_id)
    db.commit()


def list_deleted_products(db: Session) -> list[Product]:
    return (
        db.query(Product)
        .options(joinedload(Product.category))
        .filter(Product.is_deleted.is_(True))
        .order_by(Product.deleted_at.desc(), Product.id)
        .all()
    )


def restore_product(db: Session, product_id: int) -> Product:
    InventoryLedger(db).restore(product_id)
    db.commit()
    return get_product(db, product_id)
