"""
Configuration management for BidFlow Back Office
"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "BidFlow Back Office"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./bidflow.db"

    # Quotation defaults (override via env, e.g. DEFAULT_TAX_PERCENTAGE=10)
    DEFAULT_TAX_PERCENTAGE: float = 7.0
    QUOTATION_VALIDITY_MONTHS: int = 1

    # Money rounding, half away from zero
    MONEY_DECIMAL_PLACES: int = 2

    # General-cost type catalog seeded on startup
    DEFAULT_COST_TYPES: list[str] = [
        "insurance",
        "overhead",
        "site_facilities",
        "supervision",
        "transport",
    ]

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    return Settings()
