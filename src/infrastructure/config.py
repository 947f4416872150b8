"""Environment configuration using pydantic-settings."""

from datetime import time, timedelta
from decimal import Decimal
from functools import lru_cache

from pydantic import Field, PostgresDsn, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_WEEKDAYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: PostgresDsn = Field(
        ...,
        alias="DATABASE_URL",
        description="PostgreSQL connection string",
    )
    database_pool_size: int = Field(default=5, alias="DATABASE_POOL_SIZE")

    # HTTP
    http_timeout_seconds: float = Field(default=10.0, alias="HTTP_TIMEOUT_SECONDS")

    # Price acquisition
    price_api_interval_seconds: int = Field(default=60, alias="PRICE_API_INTERVAL_SECONDS")
    gold_api_key: str = Field(default="", alias="GOLD_API_KEY")
    metals_dev_api_key: str = Field(default="", alias="METALS_DEV_API_KEY")
    price_currency: str = Field(default="INR", alias="PRICE_CURRENCY")
    market_spread: Decimal = Field(
        default=Decimal("0.025"),
        alias="MARKET_SPREAD",
        description="Symmetric spread as decimal (0.025 = 2.5%)",
    )
    price_retention_days: int = Field(default=30, alias="PRICE_RETENTION_DAYS")

    # FX
    fx_refresh_seconds: int = Field(default=3600, alias="FX_REFRESH_SECONDS")
    fx_default_rate: Decimal = Field(default=Decimal("83.5"), alias="FX_DEFAULT_RATE")
    fx_base: str = Field(default="USD", alias="FX_BASE")
    fx_quote: str = Field(default="INR", alias="FX_QUOTE")

    # Scheduler
    scheduler_tick_seconds: float = Field(default=60.0, alias="SCHEDULER_TICK_SECONDS")
    market_open: time = Field(default=time(9, 0), alias="MARKET_OPEN")
    market_close: time = Field(default=time(23, 30), alias="MARKET_CLOSE")
    market_days: str = Field(
        default="mon,tue,wed,thu,fri,sat",
        alias="MARKET_DAYS",
        description="Comma-separated weekday abbreviations",
    )
    market_timezone: str = Field(default="Asia/Kolkata", alias="MARKET_TIMEZONE")

    # Alerts
    alert_cooldown_minutes: int = Field(default=60, alias="ALERT_COOLDOWN_MINUTES")

    # Payments
    payment_gateway: str = Field(
        default="paper", alias="PAYMENT_GATEWAY", description="'cashfree' or 'paper'"
    )
    cashfree_client_id: str = Field(default="", alias="CASHFREE_CLIENT_ID")
    cashfree_client_secret: str = Field(default="", alias="CASHFREE_CLIENT_SECRET")
    cashfree_environment: str = Field(default="sandbox", alias="CASHFREE_ENVIRONMENT")
    cashfree_api_version: str = Field(default="2023-08-01", alias="CASHFREE_API_VERSION")
    cashfree_return_url: str = Field(default="", alias="CASHFREE_RETURN_URL")

    # Push notifications
    expo_access_token: str = Field(default="", alias="EXPO_ACCESS_TOKEN")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    @field_validator("market_days")
    @classmethod
    def _check_market_days(cls, value: str) -> str:
        days = [d.strip().lower()[:3] for d in value.split(",") if d.strip()]
        unknown = [d for d in days if d not in _WEEKDAYS]
        if unknown:
            raise ValueError(f"Unknown weekday(s) in MARKET_DAYS: {unknown}")
        return ",".join(days)

    @property
    def market_weekdays(self) -> frozenset[int]:
        """Trading weekdays as datetime.weekday() numbers (Mon=0)."""
        return frozenset(_WEEKDAYS.index(d) for d in self.market_days.split(","))

    @property
    def price_api_interval(self) -> timedelta:
        return timedelta(seconds=self.price_api_interval_seconds)

    @property
    def fx_refresh_interval(self) -> timedelta:
        return timedelta(seconds=self.fx_refresh_seconds)

    @property
    def price_retention(self) -> timedelta:
        return timedelta(days=self.price_retention_days)

    @property
    def alert_cooldown(self) -> timedelta:
        return timedelta(minutes=self.alert_cooldown_minutes)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
