"""
Exchange rate lock.

Freezes the WLD conversion rate of a checkout session or listing so
that prices and settlement keep using the rate in effect when the buyer
committed, whatever the live feed does afterwards.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from fingrow.models.enums import RateSource
from fingrow.repositories.exchange_rate_repository import (
    ExchangeRateRepository,
    RateLockRepository,
)
from fingrow.services.base_service import BaseService, transaction
from fingrow.services.core_config import CoreConfig
from fingrow.utils.datetime_utils import utc_now
from fingrow.utils.exceptions import PreconditionError


@dataclass(frozen=True)
class RateQuote:
    """Rate to use for a currency right now: price of 1 WLD."""

    currency_code: str
    rate: Decimal
    source: RateSource
    as_of: datetime


class ExchangeRateLock(BaseService):
    """Rate locks per scope on top of the live rate history."""

    def __init__(
        self, session: AsyncSession, config: CoreConfig | None = None
    ) -> None:
        """
        Initialize exchange rate lock service.

        Args:
            session: Async database session
            config: Provides the base currency
        """
        super().__init__(session, config)
        self.rate_repo = ExchangeRateRepository(session)
        self.lock_repo = RateLockRepository(session)

    @transaction
    async def lock(self, currency: str, scope_key: str) -> RateQuote:
        """
        Freeze the current live rate for a scope.

        Supersedes any active lock of the same scope and currency.

        Args:
            currency: ISO currency code
            scope_key: Checkout session or listing key

        Returns:
            Locked quote

        Raises:
            PreconditionError: No live rate known for the currency
        """
        currency = currency.upper()
        live = await self._live_quote(currency)
        now = utc_now()

        superseded = await self.lock_repo.release(scope_key, now, currency)
        await self.lock_repo.create(
            scope_key=scope_key,
            currency_code=currency,
            rate=live.rate,
            locked_at=now,
        )

        self.logger.info(
            "Exchange rate locked",
            extra={
                "scope_key": scope_key,
                "currency": currency,
                "rate": str(live.rate),
                "superseded": superseded,
            },
        )
        return RateQuote(
            currency_code=currency,
            rate=live.rate,
            source=RateSource.LOCKED,
            as_of=now,
        )

    @transaction
    async def unlock(self, scope_key: str, currency: str | None = None) -> int:
        """
        Release the locks of a scope.

        Args:
            scope_key: Checkout session or listing key
            currency: Only this currency (every currency when None)

        Returns:
            Number of locks released
        """
        released = await self.lock_repo.release(
            scope_key, utc_now(), currency.upper() if currency else None
        )
        self.logger.info(
            "Exchange rate unlocked",
            extra={"scope_key": scope_key, "currency": currency, "released": released},
        )
        return released

    async def rate_for(
        self, currency: str, scope_key: str | None = None
    ) -> RateQuote:
        """
        Get the rate in effect for a currency.

        The active lock of ``scope_key`` wins; otherwise the latest live
        rate is used.

        Args:
            currency: ISO currency code
            scope_key: Checkout session or listing key, if any

        Returns:
            RateQuote with source ``locked`` or ``current``

        Raises:
            PreconditionError: Neither a lock nor a live rate exists
        """
        currency = currency.upper()
        if scope_key:
            active = await self.lock_repo.get_active(scope_key, currency)
            if active:
                return RateQuote(
                    currency_code=currency,
                    rate=active.rate,
                    source=RateSource.LOCKED,
                    as_of=active.locked_at,
                )
        return await self._live_quote(currency)

    @transaction
    async def record_live_rates(
        self, rates: dict[str, Decimal], source: str = "coingecko"
    ) -> int:
        """
        Store one poll of the live feed.

        Only the rate history is written; active locks are untouched.

        Args:
            rates: Currency code -> price of 1 WLD
            source: Feed name

        Returns:
            Number of rates stored
        """
        usable = {
            code.upper(): Decimal(str(rate))
            for code, rate in rates.items()
            if rate is not None and Decimal(str(rate)) > 0
        }
        if not usable:
            return 0

        await self.rate_repo.add_rates(usable, source, utc_now())
        self.logger.info(
            "Live exchange rates recorded",
            extra={"rates": {code: str(rate) for code, rate in usable.items()}},
        )
        return len(usable)

    async def _live_quote(self, currency: str) -> RateQuote:
        if currency == self.config.base_currency:
            return RateQuote(
                currency_code=currency,
                rate=Decimal("1"),
                source=RateSource.CURRENT,
                as_of=utc_now(),
            )

        latest = await self.rate_repo.get_latest(currency)
        if not latest:
            raise PreconditionError(
                f"No exchange rate known for {currency}", currency=currency
            )
        return RateQuote(
            currency_code=currency,
            rate=latest.rate,
            source=RateSource.CURRENT,
            as_of=latest.fetched_at,
        )
