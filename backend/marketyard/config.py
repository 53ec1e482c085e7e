from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./marketyard.db"

    # Application
    environment: str = "development"
    api_prefix: str = "/api"
    log_level: str = "INFO"

    # Money (rupees)
    price_update_incentive: float = 1.0  # paid to a shop per price update
    premium_subscription_price: float = 100.0  # per month
    default_currency: str = "INR"

    # Export / import
    export_version: str = "1.0.0"

    # Insights
    trend_window_days: int = 7  # recent window; the prior window is the same length before it
    deal_min_savings_pct: float = 5.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    return Settings()
