"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from decimal import Decimal, InvalidOperation

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fingrow.config.business_constants import (
    DEFAULT_REFERRAL_MAX_DEPTH,
    DEFAULT_REFERRAL_RATES,
    FIN_FEE_MAX_PERCENT,
    FIN_FEE_MIN_PERCENT,
)
from fingrow.config.operational_constants import (
    AUTO_DELIVERY_DAYS,
    RATE_FEED_TIMEOUT_SECONDS,
    RATE_POLL_INTERVAL_SECONDS,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Redis (dramatiq broker)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"

    # Referral program
    root_invite_code: str = Field(
        default="FINGROW",
        min_length=1,
        description="Invite code of the root account NIC users are attached to",
    )
    referral_max_depth: int = Field(
        default=DEFAULT_REFERRAL_MAX_DEPTH,
        ge=1,
        le=20,
        description="Deepest inviter level that receives a commission",
    )
    referral_rates: str = Field(
        default=",".join(str(rate) for rate in DEFAULT_REFERRAL_RATES),
        description=(
            "Comma-separated share of the fee pool per referral level, "
            "level 1 first (0.10 = 10%)"
        ),
    )

    # Listing fee bounds (percent of price)
    fin_fee_min_percent: Decimal = Field(default=FIN_FEE_MIN_PERCENT, ge=0)
    fin_fee_max_percent: Decimal = Field(default=FIN_FEE_MAX_PERCENT, le=100)

    # Currencies and exchange-rate feed
    base_currency: str = "WLD"
    supported_currencies: str = "THB,USD,EUR,SGD"
    rate_feed_url: str = "https://api.coingecko.com/api/v3/simple/price"
    rate_feed_coin_id: str = "worldcoin-wld"
    rate_poll_interval_seconds: int = Field(
        default=RATE_POLL_INTERVAL_SECONDS,
        ge=10,
        description="Live exchange-rate polling interval in seconds",
    )
    rate_feed_timeout_seconds: float = Field(
        default=RATE_FEED_TIMEOUT_SECONDS, gt=0
    )

    # Order lifecycle policy
    auto_delivery_days: int = Field(
        default=AUTO_DELIVERY_DAYS,
        ge=1,
        description="Shipped orders older than this are marked delivered",
    )
    allow_cancel_after_shipment: bool = Field(
        default=False,
        description="Allow admins to cancel shipped or delivered orders",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL uses an async driver."""
        if not v.startswith(("postgresql+asyncpg://", "sqlite+aiosqlite://")):
            raise ValueError(
                "DATABASE_URL must start with postgresql+asyncpg:// "
                "or sqlite+aiosqlite://"
            )
        return v

    @field_validator("root_invite_code")
    @classmethod
    def normalize_root_invite_code(cls, v: str) -> str:
        """Invite codes are stored upper-case."""
        return v.strip().upper()

    @model_validator(mode="after")
    def validate_referral_rates(self) -> "Settings":
        """Referral payouts must never exceed the fee pool."""
        rates = self.get_referral_rates()
        total = sum(rates.values(), Decimal("0"))
        if total > Decimal("1"):
            raise ValueError(
                f"REFERRAL_RATES sum to {total}; the total share of the "
                "fee pool paid to referrers cannot exceed 1"
            )
        return self

    @model_validator(mode="after")
    def validate_fee_bounds(self) -> "Settings":
        """Minimum listing fee must not exceed the maximum."""
        if self.fin_fee_min_percent > self.fin_fee_max_percent:
            raise ValueError(
                "FIN_FEE_MIN_PERCENT must be <= FIN_FEE_MAX_PERCENT"
            )
        return self

    @model_validator(mode="after")
    def validate_production(self) -> "Settings":
        """Validate production-specific requirements."""
        if self.environment == "production":
            if self.debug:
                raise ValueError(
                    "DEBUG must be False in production environment. "
                    "Set DEBUG=false in your .env file."
                )
            if self.database_url.startswith("sqlite"):
                logger.warning(
                    "DATABASE_URL points to SQLite in production. "
                    "Row locking is not available on SQLite."
                )
        return self

    def get_referral_rates(self) -> dict[int, Decimal]:
        """
        Parse the per-level rate table.

        Levels deeper than ``referral_max_depth`` are dropped, levels
        not listed pay nothing.

        Returns:
            Mapping of level (1-based) to fraction of the fee pool

        Raises:
            ValueError: If a rate is not a number in [0, 1]
        """
        rates: dict[int, Decimal] = {}
        if not self.referral_rates.strip():
            return rates

        for index, raw in enumerate(self.referral_rates.split(","), start=1):
            if index > self.referral_max_depth:
                break
            try:
                rate = Decimal(raw.strip())
            except InvalidOperation as exc:
                raise ValueError(f"Invalid referral rate: {raw!r}") from exc
            if rate < 0 or rate > 1:
                raise ValueError(
                    f"Referral rate for level {index} must be within [0, 1]"
                )
            rates[index] = rate
        return rates

    def get_supported_currencies(self) -> list[str]:
        """Parse supported currency codes from comma-separated string."""
        return [
            code.strip().upper()
            for code in self.supported_currencies.split(",")
            if code.strip()
        ]


# Global settings instance
settings = Settings()
