# ecommerce_api/core/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    ENV: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./ecommerce.db"
    DATABASE_ECHO: bool = False
    SQLITE_BUSY_TIMEOUT: float = 15.0
    AUTO_CREATE_TABLES: bool = True

    # CORS
    CORS_ORIGINS: list[str] = [
        "http://127.0.0.1:5500",
        "http://localhost:5500",
    ]

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    SALES_RATE_LIMIT: str = "30/minute"

    # Sale creation retries on storage conflicts
    SALE_CREATE_MAX_ATTEMPTS: int = 3
    SALE_RETRY_BACKOFF_SECONDS: float = 0.05

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="forbid",
    )


settings = Settings()
