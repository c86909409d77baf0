"""Unit tests for the live rate feed payload parsing."""

from decimal import Decimal

import pytest

from fingrow.services.exchange_rate.feed import RateFeedClient
from fingrow.utils.exceptions import RateFeedError


@pytest.fixture
def client():
    return RateFeedClient(
        url="https://rates.invalid/simple/price",
        coin_id="worldcoin-wld",
        timeout_seconds=1,
    )


class TestRateFeedParsing:
    """Test CoinGecko simple-price payload handling."""

    def test_parses_prices(self, client):
        """Prices are returned upper-case as Decimal."""
        payload = {"worldcoin-wld": {"thb": 31.25, "usd": 0.87}}

        rates = client._parse(payload, ["thb", "usd"])

        assert rates == {"THB": Decimal("31.25"), "USD": Decimal("0.87")}

    def test_skips_missing_and_invalid(self, client):
        """Absent, zero and non-numeric prices are dropped."""
        payload = {"worldcoin-wld": {"thb": 31.25, "usd": 0, "eur": "n/a"}}

        rates = client._parse(payload, ["thb", "usd", "eur", "sgd"])

        assert rates == {"THB": Decimal("31.25")}

    def test_unknown_coin(self, client):
        with pytest.raises(RateFeedError):
            client._parse({"bitcoin": {"thb": 1}}, ["thb"])

    def test_no_usable_prices(self, client):
        with pytest.raises(RateFeedError):
            client._parse({"worldcoin-wld": {}}, ["thb"])

    @pytest.mark.asyncio
    async def test_fetch_nothing_requested(self, client):
        """No currencies means no request."""
        assert await client.fetch([]) == {}
