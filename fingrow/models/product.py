"""
Product model.

A secondhand listing priced in a local currency, carrying the seller's
chosen fin fee (community share) percentage.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from fingrow.models.base import Base
from fingrow.models.enums import ProductStatus
from fingrow.models.types import MoneyType, PercentType


class Product(Base):
    """Product listing."""

    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("price_local > 0", name="check_product_price_positive"),
        CheckConstraint(
            "fin_fee_percent >= 0 AND fin_fee_percent <= 100",
            name="check_product_fee_percent_range",
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    seller_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)

    # Pricing
    price_local: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    currency_code: Mapped[str] = mapped_column(
        String(8), nullable=False, default="THB"
    )
    fin_fee_percent: Mapped[Decimal] = mapped_column(
        PercentType, nullable=False
    )
    amount_fee: Mapped[Decimal] = mapped_column(
        MoneyType,
        nullable=False,
        comment="price_local * fin_fee_percent / 100, stamped on write",
    )

    status: Mapped[str] = mapped_column(
        String(16),
        default=ProductStatus.ACTIVE.value,
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    @property
    def is_available(self) -> bool:
        """Listing can still be ordered."""
        return self.status == ProductStatus.ACTIVE

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Product(id={self.id}, seller_id={self.seller_id}, "
            f"price={self.price_local} {self.currency_code}, "
            f"status={self.status})>"
        )
