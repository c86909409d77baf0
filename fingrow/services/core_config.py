"""
Core configuration passed explicitly into every core service.

Built once from settings (or by tests) and injected through service
constructors instead of being read from module state during a call.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from fingrow.config.settings import Settings


@dataclass(frozen=True)
class CoreConfig:
    """Business rules the order, referral and commission services obey."""

    referral_max_depth: int
    referral_rates: dict[int, Decimal] = field(default_factory=dict)
    root_invite_code: str = "FINGROW"
    fin_fee_min_percent: Decimal = Decimal("1")
    fin_fee_max_percent: Decimal = Decimal("7")
    allow_cancel_after_shipment: bool = False
    auto_delivery_days: int = 14
    base_currency: str = "WLD"

    def rate_for_level(self, level: int) -> Decimal:
        """Commission share of the fee pool for a level (0 outside the table)."""
        if level < 1 or level > self.referral_max_depth:
            return Decimal("0")
        return self.referral_rates.get(level, Decimal("0"))

    @classmethod
    def from_settings(cls, settings: Settings) -> "CoreConfig":
        return cls(
            referral_max_depth=settings.referral_max_depth,
            referral_rates=settings.get_referral_rates(),
            root_invite_code=settings.root_invite_code,
            fin_fee_min_percent=settings.fin_fee_min_percent,
            fin_fee_max_percent=settings.fin_fee_max_percent,
            allow_cancel_after_shipment=settings.allow_cancel_after_shipment,
            auto_delivery_days=settings.auto_delivery_days,
            base_currency=settings.base_currency.upper(),
        )


def default_config() -> CoreConfig:
    """CoreConfig built from the process settings."""
    from fingrow.config.settings import settings

    return CoreConfig.from_settings(settings)
