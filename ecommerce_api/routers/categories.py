# ecommerce_api/routers/categories.py

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ecommerce_api.database import get_db
from ecommerce_api.schemas.category import (
    CategoryCreate,
    CategoryPage,
    CategoryResponse,
    CategoryUpdate,
)
from ecommerce_api.services import catalog

router = APIRouter(
    prefix="/api/categories",
    tags=["Categories"],
)


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(
    category_data: CategoryCreate,
    db: Session = Depends(get_db),
):
    return catalog.create_category(db, category_data)


@router.get("", response_model=CategoryPage)
def list_categories(
    db: Session = Depends(get_db),
    page: int = Query(1),
    page_size: int = Query(10),
    search: str | None = Query(None),
    sort_by: str | None = Query(None),
    sort_direction: str | None = Query(None),
    include_deleted: bool = Query(False),
):
    return catalog.list_categories(
        db,
        page=page,
        page_size=page_size,
        search=search,
        sort_by=sort_by,
        sort_direction=sort_direction,
        include_deleted=include_deleted,
    )


@router.get("/deleted", response_model=list[CategoryResponse])
def list_deleted_categories(db: Session = Depends(get_db)):
    return catalog.list_deleted_categories(db)


@router.get("/name/{name}", response_model=CategoryResponse)
def get_category_by_name(name: str, db: Session = Depends(get_db)):
    return catalog.get_category_by_name(db, name)


@router.get("/{category_id}", response_model=CategoryResponse)
def get_category(category_id: int, db: Session = Depends(get_db)):
    return catalog.get_category(db, category_id)


@router.put("/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: int,
    category_data: CategoryUpdate,
    db: Session = Depends(get_db),
):
    return catalog.update_category(db, category_id, category_data)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(category_id: int, db: Session = Depends(get_db)):
    catalog.delete_category(db, category_id)
    return None


@router.post("/{category_id}/restore")
def restore_category(category_id: int, db: Session = Depends(get_db)):
    catalog.restore_category(db, category_id)
    return {"message": "Category restored successfully"}
