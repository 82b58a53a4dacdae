from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Backend selection: "rest" talks to the hosted API, "database" to DATABASE_URL
    BACKEND_MODE: str = "rest"

    # Hosted backend API
    BACKEND_API_BASE_URL: str = "http://localhost:54321"
    BACKEND_API_KEY: str = ""
    BACKEND_TIMEOUT_SECONDS: float = 10.0
    BACKEND_RETRIES: int = 1

    # Self-hosted backend database
    DATABASE_URL: str = "sqlite+aiosqlite:///./atorwala.db"

    # Session
    SESSION_SECRET_KEY: str = "change-me"
    SESSION_MAX_AGE_SECONDS: int = 3600 * 24 * 7

    # Shop Configuration
    SHOP_NAME: str = "Atorwala"
    CURRENCY_SYMBOL: str = "৳"
    PRICE_DECIMALS: int = 2
    PRODUCT_IMAGE_BASE_URL: str = "/static/images"
    CORS_ORIGINS: List[str] = ["*"]

    # Checkout (REMOTE_CALL_TIMEOUT_SECONDS bounds a backend call including its retry)
    PROMO_DEBOUNCE_SECONDS: float = 0.5
    REMOTE_CALL_TIMEOUT_SECONDS: float = 25.0

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
