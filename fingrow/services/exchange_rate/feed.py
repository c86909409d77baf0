"""
Live exchange rate feed client (CoinGecko simple price API).
"""

from collections.abc import Iterable
from decimal import Decimal, InvalidOperation

import aiohttp
from loguru import logger

from fingrow.utils.exceptions import RateFeedError


class RateFeedClient:
    """Fetches the price of 1 WLD in a set of currencies."""

    def __init__(
        self,
        url: str | None = None,
        coin_id: str | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        """
        Initialize feed client.

        Args:
            url: Simple price endpoint (settings.rate_feed_url by default)
            coin_id: Coin identifier (settings.rate_feed_coin_id by default)
            timeout_seconds: Total request timeout
        """
        from fingrow.config.settings import settings

        self.url = url or settings.rate_feed_url
        self.coin_id = coin_id or settings.rate_feed_coin_id
        self.timeout_seconds = timeout_seconds or settings.rate_feed_timeout_seconds

    async def fetch(self, currencies: Iterable[str]) -> dict[str, Decimal]:
        """
        Fetch current rates.

        Args:
            currencies: ISO currency codes

        Returns:
            Upper-case currency code -> price of 1 WLD (positive only)

        Raises:
            RateFeedError: HTTP failure, timeout or unusable payload
        """
        codes = [c.lower() for c in currencies]
        if not codes:
            return {}

        params = {"ids": self.coin_id, "vs_currencies": ",".join(codes)}

        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    self.url,
                    params=params,
                    timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                ) as response:
                    if response.status != 200:
                        raise RateFeedError(
                            f"Rate feed returned HTTP {response.status}",
                            status=response.status,
                        )
                    payload = await response.json()
        except (aiohttp.ClientError, TimeoutError) as e:
            logger.warning(f"Rate feed request failed: {e}")
            raise RateFeedError(f"Rate feed request failed: {e}") from e

        return self._parse(payload, codes)

    def _parse(self, payload: object, codes: list[str]) -> dict[str, Decimal]:
        if not isinstance(payload, dict) or not isinstance(
            payload.get(self.coin_id), dict
        ):
            raise RateFeedError(
                f"Rate feed payload has no prices for {self.coin_id}",
                coin_id=self.coin_id,
            )

        prices = payload[self.coin_id]
        rates: dict[str, Decimal] = {}
        for code in codes:
            value = prices.get(code)
            if value is None:
                continue
            try:
                rate = Decimal(str(value))
            except InvalidOperation:
                logger.warning(f"Rate feed sent non-numeric price for {code}: {value!r}")
                continue
            if rate > 0:
                rates[code.upper()] = rate

        if not rates:
            raise RateFeedError(
                "Rate feed returned no usable prices", currencies=codes
            )
        return rates
