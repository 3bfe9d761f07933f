from typing import List

from pydantic_settings import BaseSettings
import os


class Settings(BaseSettings):
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DATABASE: str = "storecart"

    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "change-me")
    JWT_LIFETIME_SECONDS: int = 3600
    CLIENT_ORIGIN: str = "http://localhost:3000"

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = "INFO"

    REDIS_URL: str = "redis://localhost:6379"
    RATE_LIMITING_ENABLED: bool = False

    # Ledger defaults for newly registered users
    DEFAULT_ADDRESS: str = "ADDRESS_NOT_SET"
    DEFAULT_WALLET_MONEY: float = 500

    # Cart engine
    CART_OPERATION_TIMEOUT_SECONDS: float = 5.0
    CART_WRITE_RETRIES: int = 3

    # Reconciliation of partially applied checkouts
    RECONCILIATION_ENABLED: bool = False
    RECONCILIATION_INTERVAL_MINUTES: int = 5

    @property
    def allowed_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CLIENT_ORIGIN.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True


# create a singleton instance
settings = Settings()
