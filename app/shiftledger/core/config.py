from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    APP_NAME: str = "SHIFT-LEDGER"
    DATABASE_URL: str = "sqlite+pysqlite:///./shiftledger.db"
    SQLITE_BUSY_TIMEOUT_SECONDS: float = 30.0
    METRICS_ENABLED: bool = True
    # Upper bound for a single payment; keeps cents within BIGINT.
    MAX_PAYMENT_AMOUNT: Decimal = Decimal("10000000.00")
    ORDERS_API_BASE_URL: str = ""
    ORDERS_API_TIMEOUT_SECONDS: float = 5.0
    ACTIVE_SESSION_CACHE_PATH: str = "./.shiftledger/active_session.json"
    CURRENCY_SYMBOL: str = "₹"
    OPS_ENABLE_INTEGRITY_SCAN: bool = True


settings = Settings()
