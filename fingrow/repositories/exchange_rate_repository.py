"""
Exchange rate repositories.

Data access for polled live rates and rate locks.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fingrow.models.exchange_rate import ExchangeRate, RateLock
from fingrow.repositories.base import BaseRepository


class ExchangeRateRepository(BaseRepository[ExchangeRate]):
    """Live rate history."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize exchange rate repository."""
        super().__init__(ExchangeRate, session)

    async def get_latest(self, currency_code: str) -> ExchangeRate | None:
        """
        Get the most recently fetched rate for a currency.

        Args:
            currency_code: ISO currency code

        Returns:
            Latest ExchangeRate or None if never fetched
        """
        stmt = (
            select(ExchangeRate)
            .where(ExchangeRate.currency_code == currency_code)
            .order_by(ExchangeRate.fetched_at.desc(), ExchangeRate.id.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def add_rates(
        self, rates: dict[str, Decimal], source: str, fetched_at: datetime
    ) -> list[ExchangeRate]:
        """
        Store one poll result.

        Args:
            rates: Currency code -> price of 1 WLD
            source: Feed name
            fetched_at: Poll moment

        Returns:
            Created rows
        """
        rows = [
            ExchangeRate(
                currency_code=code,
                rate=rate,
                source=source,
                fetched_at=fetched_at,
            )
            for code, rate in rates.items()
        ]
        self.session.add_all(rows)
        await self.session.flush()
        return rows


class RateLockRepository(BaseRepository[RateLock]):
    """Rate locks per scope."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize rate lock repository."""
        super().__init__(RateLock, session)

    async def get_active(
        self, scope_key: str, currency_code: str
    ) -> RateLock | None:
        """
        Get the active lock of a scope for a currency.

        Args:
            scope_key: Checkout session or listing key
            currency_code: ISO currency code

        Returns:
            Active RateLock or None
        """
        stmt = (
            select(RateLock)
            .where(
                RateLock.scope_key == scope_key,
                RateLock.currency_code == currency_code,
                RateLock.released_at.is_(None),
            )
            .order_by(RateLock.id.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def release(
        self,
        scope_key: str,
        released_at: datetime,
        currency_code: str | None = None,
    ) -> int:
        """
        Release active locks of a scope.

        Args:
            scope_key: Checkout session or listing key
            released_at: Release moment
            currency_code: Only this currency (all when None)

        Returns:
            Number of locks released
        """
        stmt = update(RateLock).where(
            RateLock.scope_key == scope_key,
            RateLock.released_at.is_(None),
        )
        if currency_code:
            stmt = stmt.where(RateLock.currency_code == currency_code)

        stmt = stmt.values(released_at=released_at).execution_options(
            synchronize_session="fetch"
        )
        result = await self.session.execute(stmt)
        return result.rowcount
