# =========================================================
# E-COMMERCE API CLIENT
# Thin requests wrapper over the back office HTTP API.
# HTTP failures come back as ApiResult(success=False, ...)
# instead of raising, so callers can render the message.
# =========================================================

import logging
from dataclasses import dataclass
from typing import Any

import requests

from ecommerce_console.config import settings

logger = logging.getLogger(__name__)


@dataclass
class ApiResult:
    success: bool
    status_code: int
    data: Any = None
    message: str = ""


class ECommerceApiClient:
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.API_TIMEOUT_SECONDS
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})

    # ---------------- PRODUCTS ----------------
    def get_products(self, **query) -> ApiResult:
        return self._request("GET", "/api/products", params=query)

    def get_product(self, product_id: int) -> ApiResult:
        return self._request("GET", f"/api/products/{product_id}")

    def create_product(self, payload: dict) -> ApiResult:
        return self._request("POST", "/api/products", json=payload)

    def update_product(self, product_id: int, payload: dict) -> ApiResult:
        return self._request("PUT", f"/api/products/{product_id}", json=payload)

    def delete_product(self, product_id: int) -> ApiResult:
        return self._request("DELETE", f"/api/products/{product_id}")

    def get_deleted_products(self) -> ApiResult:
        return self._request("GET", "/api/products/deleted")

    def restore_product(self, product_id: int) -> ApiResult:
        return self._request("POST", f"/api/products/{product_id}/restore")

    # ---------------- CATEGORIES ----------------
    def get_categories(self, **query) -> ApiResult:
        return self._request("GET", "/api/categories", params=query)

    def create_category(self, payload: dict) -> ApiResult:
        return self._request("POST", "/api/categories", json=payload)

    def update_category(self, category_id: int, payload: dict) -> ApiResult:
        return self._request("PUT", f"/api/categories/{category_id}", json=payload)

    def delete_category(self, category_id: int) -> ApiResult:
        return self._request("DELETE", f"/api/categories/{category_id}")

    # ---------------- SALES ----------------
    def get_sales(self, **query) -> ApiResult:
        return self._request("GET", "/api/sales", params=query)

    def get_sale(self, sale_id: int, historical: bool = False) -> ApiResult:
        path = f"/api/sales/{sale_id}"
        if historical:
            path += "/with-deleted-products"
        return self._request("GET", path)

    def get_historical_sales(self) -> ApiResult:
        return self._request("GET", "/api/sales/with-deleted-products")

    def create_sale(self, payload: dict) -> ApiResult:
        return self._request("POST", "/api/sales", json=payload)

    # ---------------- REPORTS ----------------
    def get_sales_summary(self) -> ApiResult:
        return self._request("GET", "/api/reports/sales-summary")

    def _request(self, method: str, path: str, params: dict | None = None, json: Any = None) -> ApiResult:
        if params:
            params = {key: value for key, value in params.items() if value is not None}

        try:
            response = self.session.request(
                method,
                f"{self.base_url}{path}",
                params=params or None,
                json=json,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            return ApiResult(success=False, status_code=0, message=f"Unable to reach the API: {exc}")

        if response.status_code == 204:
            return ApiResult(success=True, status_code=204)

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.ok:
            return ApiResult(success=True, status_code=response.status_code, data=body)

        return ApiResult(
            success=False,
            status_code=response.status_code,
            data=body,
            message=_error_message(body, response),
        )


def _error_message(body: Any, response: requests.Response) -> str:
    if isinstance(body, dict):
        detail = body.get("detail")
        if isinstance(detail, str):
            return detail
        if isinstance(detail, list):
            # FastAPI request validation errors
            return "; ".join(str(error.get("msg", error)) for error in detail)
    return response.text or response.reason or f"HTTP {response.status_code}"
