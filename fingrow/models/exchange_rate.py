"""
Exchange rate models.

``exchange_rates`` is the history of polled live rates; the newest row
per currency is the current rate. ``rate_locks`` freezes a rate for a
checkout session or listing until released or superseded.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from fingrow.models.base import Base
from fingrow.models.types import RateType


class ExchangeRate(Base):
    """One polled live rate: price of 1 WLD in ``currency_code``."""

    __tablename__ = "exchange_rates"
    __table_args__ = (
        Index("idx_exchange_rates_currency_fetched", "currency_code", "fetched_at"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    currency_code: Mapped[str] = mapped_column(String(8), nullable=False)
    rate: Mapped[Decimal] = mapped_column(RateType, nullable=False)
    source: Mapped[str] = mapped_column(
        String(32), default="coingecko", nullable=False
    )
    fetched_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<ExchangeRate({self.currency_code}={self.rate} @ {self.fetched_at})>"


class RateLock(Base):
    """Rate frozen for one scope (checkout session or listing)."""

    __tablename__ = "rate_locks"
    __table_args__ = (
        Index("idx_rate_locks_scope_currency", "scope_key", "currency_code"),
        # At most one active lock per scope and currency
        Index(
            "uq_rate_locks_active_scope_currency",
            "scope_key",
            "currency_code",
            unique=True,
            postgresql_where=text("released_at IS NULL"),
            sqlite_where=text("released_at IS NULL"),
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    scope_key: Mapped[str] = mapped_column(String(128), nullable=False)
    currency_code: Mapped[str] = mapped_column(String(8), nullable=False)
    rate: Mapped[Decimal] = mapped_column(RateType, nullable=False)
    locked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    # NULL while the lock is active
    released_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    @property
    def is_active(self) -> bool:
        return self.released_at is None

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<RateLock(scope={self.scope_key}, {self.currency_code}={self.rate}, "
            f"active={self.is_active})>"
        )
