# =========================================================
# PAGINATION HELPERS
# Page numbers below 1 snap to 1, page sizes outside
# 1..max snap to the default / the max. Sort keys are
# validated against an explicit column map.
# =========================================================

import math

from sqlalchemy.orm import Query

from ecommerce_api.core.exceptions import ValidationFailed

DEFAULT_PAGE_SIZE = 10


def clamp_page(page: int | None) -> int:
    if page is None or page < 1:
        return 1
    return page


def clamp_page_size(page_size: int | None, max_page_size: int) -> int:
    if page_size is None or page_size < 1:
        return DEFAULT_PAGE_SIZE
    return min(page_size, max_page_size)


def paginate(query: Query, page: int, page_size: int) -> dict:
    total_count = query.order_by(None).count()
    items = query.offset((page - 1) * page_size).limit(page_size).all()

    total_pages = math.ceil(total_count / page_size) if page_size else 0

    return {
        "data": items,
        "current_page": page,
        "page_size": page_size,
        "total_count": total_count,
        "total_pages": total_pages,
        "has_next_page": page < total_pages,
        "has_previous_page": page > 1,
    }


def sort_direction_is_desc(sort_direction: str | None) -> bool:
    if sort_direction is None or not sort_direction.strip():
        return False
    direction = sort_direction.strip().lower()
    if direction not in ("asc", "desc"):
        raise ValidationFailed("Sort direction must be either 'asc' or 'desc'.")
    return direction == "desc"


def sort_column(sort_by: str | None, allowed: dict, default):
    """Map a ``sort_by`` key onto one of the ``allowed`` columns."""
    if sort_by is None or not sort_by.strip():
        return default
    column = allowed.get(sort_by.strip().lower())
    if column is None:
        raise ValidationFailed(
            f"Sort by must be one of the following values: {', '.join(allowed)}."
        )
    return column
