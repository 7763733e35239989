# ecommerce_api/routers/products.py

from decimal import Decimal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ecommerce_api.database import get_db
from ecommerce_api.schemas.product import (
    ProductCreate,
    ProductPage,
    ProductResponse,
    ProductUpdate,
)
from ecommerce_api.services import catalog

router = APIRouter(
    prefix="/api/products",
    tags=["Products"],
)


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_product(
    product_data: ProductCreate,
    db: Session = Depends(get_db),
):
    return catalog.create_product(db, product_data)


@router.get("", response_model=ProductPage)
def list_products(
    db: Session = Depends(get_db),
    page: int = Query(1),
    page_size: int = Query(10),
    search: str | None = Query(None),
    category_id: int | None = Query(None),
    min_price: Decimal | None = Query(None),
    max_price: Decimal | None = Query(None),
    sort_by: str | None = Query(None),
    sort_direction: str | None = Query(None),
    include_deleted: bool = Query(False),
):
    return catalog.list_products(
        db,
        page=page,
        page_size=page_size,
        search=search,
        category_id=category_id,
        min_price=min_price,
        max_price=max_price,
        sort_by=sort_by,
        sort_direction=sort_direction,
        include_deleted=include_deleted,
    )


@router.get("/deleted", response_model=list[ProductResponse])
def list_deleted_products(db: Session = Depends(get_db)):
    return catalog.list_deleted_products(db)


@router.get("/category/{category_id}", response_model=list[ProductResponse])
def list_products_by_category(category_id: int, db: Session = Depends(get_db)):
    return catalog.list_products_by_category(db, category_id)


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return catalog.get_product(db, product_id)


@router.put("/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: int,
    product_data: ProductUpdate,
    db: Session = Depends(get_db),
):
    return catalog.update_product(db, product_id, product_data)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(product_id: int, db: Session = Depends(get_db)):
    # Soft delete: the row stays for sales that reference it
    catalog.delete_product(db, product_id)
    return None


@router.post("/{product_id}/restore", response_model=ProductResponse)
def restore_product(product_id: int, db: Session = Depends(get_db)):
    return catalog.restore_product(db, product_id)
