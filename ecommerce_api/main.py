# Main application file

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

import ecommerce_api.models  # noqa: F401  (registers all tables on Base.metadata)
from ecommerce_api.core.config import settings
from ecommerce_api.core.exceptions import (
    AppException,
    app_exception_handler,
    generic_exception_handler,
)
from ecommerce_api.core.rate_limiter import limiter
from ecommerce_api.database import Base, engine
from ecommerce_api.routers import (
    categories,
    exports,
    products,
    reports,
    sales,
)


# LOGGING CONFIGURATION

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

logger = logging.getLogger("ecommerce_api")


# SCHEMA (development only; migrations are managed with Alembic)

@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.AUTO_CREATE_TABLES:
        Base.metadata.create_all(bind=engine)
    yield
    engine.dispose()


# APP INIT

app = FastAPI(
    title="E-Commerce Back Office API",
    description="Products, categories and sales with stock tracking and sales history",
    version="1.0.0",
    lifespan=lifespan,
)


# CORS

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type"],
)


# ERROR HANDLING

app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


# RATE LIMITING

app.state.limiter = limiter
app.add_exception_handler(
    RateLimitExceeded,
    _rate_limit_exceeded_handler
)


# REQUEST LOGGING MIDDLEWARE

@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()

    response = await call_next(request)

    duration = round((time.time() - start_time) * 1000, 2)

    logger.info(
        f"{request.method} {request.url.path} "
        f"Status: {response.status_code} "
        f"Time: {duration}ms"
    )

    return response


# ROUTERS

app.include_router(products.router)
app.include_router(categories.router)
app.include_router(sales.router)
app.include_router(reports.router)
app.include_router(exports.router)


# ROOT

@app.get("/")
def root():
    logger.info("Health check endpoint called")
    return {"message": "E-Commerce Back Office API is running"}
