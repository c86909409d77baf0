"""Unit tests for settings parsing and CoreConfig."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from fingrow.config.settings import Settings
from fingrow.services.core_config import CoreConfig


DB_URL = "sqlite+aiosqlite:///:memory:"


class TestReferralRateSettings:
    """Test REFERRAL_RATES parsing and validation."""

    def test_default_rates(self):
        """Default program pays 10/5/3 then 1% to level 7."""
        settings = Settings(database_url=DB_URL, environment="test")

        rates = settings.get_referral_rates()

        assert rates[1] == Decimal("0.10")
        assert rates[3] == Decimal("0.03")
        assert len(rates) == 7

    def test_rates_beyond_depth_dropped(self):
        """Levels deeper than REFERRAL_MAX_DEPTH are ignored."""
        settings = Settings(
            database_url=DB_URL,
            environment="test",
            referral_max_depth=2,
            referral_rates="0.2,0.1,0.05",
        )

        assert settings.get_referral_rates() == {
            1: Decimal("0.2"),
            2: Decimal("0.1"),
        }

    def test_rates_summing_above_one_rejected(self):
        """Referral lines could exceed the fee pool."""
        with pytest.raises(ValidationError):
            Settings(
                database_url=DB_URL,
                environment="test",
                referral_rates="0.6,0.5",
            )

    def test_non_numeric_rate_rejected(self):
        with pytest.raises(ValidationError):
            Settings(
                database_url=DB_URL, environment="test", referral_rates="0.1,abc"
            )

    def test_sync_driver_rejected(self):
        """Only async drivers are accepted."""
        with pytest.raises(ValidationError):
            Settings(database_url="postgresql://x@localhost/db", environment="test")

    def test_fee_bounds_order(self):
        with pytest.raises(ValidationError):
            Settings(
                database_url=DB_URL,
                environment="test",
                fin_fee_min_percent=Decimal("8"),
                fin_fee_max_percent=Decimal("7"),
            )

    def test_supported_currencies_normalized(self):
        settings = Settings(
            database_url=DB_URL,
            environment="test",
            supported_currencies=" thb, usd ,,",
        )

        assert settings.get_supported_currencies() == ["THB", "USD"]


class TestCoreConfig:
    """Test CoreConfig construction and lookups."""

    def test_from_settings(self):
        """CoreConfig mirrors the business settings."""
        settings = Settings(
            database_url=DB_URL,
            environment="test",
            root_invite_code=" fingrow ",
            allow_cancel_after_shipment=True,
            base_currency="wld",
        )

        config = CoreConfig.from_settings(settings)

        assert config.root_invite_code == "FINGROW"
        assert config.allow_cancel_after_shipment is True
        assert config.base_currency == "WLD"
        assert config.referral_rates == settings.get_referral_rates()

    def test_rate_for_level(self, core_config):
        """Levels outside the table pay nothing."""
        assert core_config.rate_for_level(1) == Decimal("0.10")
        assert core_config.rate_for_level(7) == Decimal("0.01")
        assert core_config.rate_for_level(0) == Decimal("0")
        assert core_config.rate_for_level(8) == Decimal("0")
