import logging
from enum import Enum

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorType(Enum):
    VALIDATION_FAILED = "validation_failed"
    NOT_FOUND = "not_found"
    PRODUCT_NOT_FOUND = "product_not_found"
    INSUFFICIENT_STOCK = "insufficient_stock"
    DUPLICATE_ENTITY = "duplicate_entity"
    STORAGE_CONFLICT = "storage_conflict"
    UNEXPECTED = "unexpected"


# Map error types to HTTP status codes
ERROR_STATUS_MAP = {
    ErrorType.VALIDATION_FAILED: 400,
    ErrorType.NOT_FOUND: 404,
    ErrorType.PRODUCT_NOT_FOUND: 404,
    ErrorType.INSUFFICIENT_STOCK: 409,
    ErrorType.DUPLICATE_ENTITY: 409,
    ErrorType.STORAGE_CONFLICT: 409,
    ErrorType.UNEXPECTED: 500,
}


class AppException(Exception):
    """Base for errors services raise; carries the HTTP-facing error type."""

    error_type = ErrorType.UNEXPECTED

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationFailed(AppException):
    error_type = ErrorType.VALIDATION_FAILED


class NotFound(AppException):
    error_type = ErrorType.NOT_FOUND


class ProductNotFound(NotFound):
    error_type = ErrorType.PRODUCT_NOT_FOUND

    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found.")


class InsufficientStock(AppException):
    error_type = ErrorType.INSUFFICIENT_STOCK

    def __init__(self, product_id: int, requested: int, available: int | None = None):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(f"Insufficient stock for product {product_id}.")


class DuplicateEntity(AppException):
    error_type = ErrorType.DUPLICATE_ENTITY


class StorageConflict(AppException):
    """Transient concurrency failure; safe to retry with backoff."""

    error_type = ErrorType.STORAGE_CONFLICT

    def __init__(self, message: str = "The request conflicted with a concurrent update. Please retry."):
        super().__init__(message)


class Unexpected(AppException):
    error_type = ErrorType.UNEXPECTED

    def __init__(self, message: str = "An unexpected error occurred. Please try again later."):
        super().__init__(message)


async def app_exception_handler(_request: Request, exc: AppException) -> JSONResponse:
    """Global handler for AppException - converts to proper HTTP response."""
    status_code = ERROR_STATUS_MAP.get(exc.error_type, 500)
    headers = {"Retry-After": "1"} if exc.error_type is ErrorType.STORAGE_CONFLICT else None
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error": exc.error_type.value},
        headers=headers,
    )


async def generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Global handler for unhandled exceptions - returns 500."""
    logger.error("Unhandled exception: %r", exc, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "error": ErrorType.UNEXPECTED.value},
    )
