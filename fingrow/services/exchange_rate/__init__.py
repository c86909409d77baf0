"""
Exchange rate services package.

- lock: per-scope rate locks over the live rate history
- feed: CoinGecko client used by the periodic poll
"""

from fingrow.services.exchange_rate.feed import RateFeedClient
from fingrow.services.exchange_rate.lock import ExchangeRateLock, RateQuote


__all__ = [
    "ExchangeRateLock",
    "RateFeedClient",
    "RateQuote",
]
