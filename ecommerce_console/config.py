# ecommerce_console/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict


class ConsoleSettings(BaseSettings):
    API_BASE_URL: str = "http://127.0.0.1:8000"
    API_TIMEOUT_SECONDS: float = 30.0

    # Kept apart from the server's .env, which forbids unknown keys
    model_config = SettingsConfigDict(
        env_file="console.env",
        extra="ignore",
    )


settings = ConsoleSettings()
