from decimal import Decimal
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # App
    APP_NAME: str = "Retail Commission Ledger"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # Database
    DATABASE_URL: str = "sqlite:///./commission.db"

    # CORS (frontend)
    FRONTEND_URL: Optional[str] = None

    # Reporting
    COMMISSION_TIMEZONE: str = "Europe/London"  # calendar months are bucketed in this zone
    CURRENCY_SYMBOL: str = "£"
    DEFAULT_MONTHS_BACK: int = 12

    # Seed values for the commission_settings row (read by the engine from the DB)
    DEFAULT_COMMISSION_ENABLED: bool = True
    DEFAULT_COMMISSION_RATE: Decimal = Decimal("5")  # percent
    DEFAULT_COMMISSION_BASIS: str = "revenue"  # revenue or profit

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
