"""
Earning model.

Append-only ledger of money credited to users from completed orders.
One row per (order, beneficiary).
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from fingrow.models.base import Base
from fingrow.models.types import CommissionRateType, MoneyType


class Earning(Base):
    """Ledger entry: seller payout or referral commission."""

    __tablename__ = "earnings"
    __table_args__ = (
        UniqueConstraint(
            "source_order_id", "user_id", name="uq_earning_order_beneficiary"
        ),
        CheckConstraint("amount >= 0", name="check_earning_amount_non_negative"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    earning_type: Mapped[str] = mapped_column(String(16), nullable=False, index=True)

    amount: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, comment="Amount in the order currency"
    )
    currency_code: Mapped[str] = mapped_column(String(8), nullable=False)
    amount_wld: Mapped[Decimal] = mapped_column(
        MoneyType,
        nullable=False,
        comment="amount converted with the order's stamped rate",
    )

    source_order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    referral_id: Mapped[int | None] = mapped_column(
        ForeignKey("referrals.id", ondelete="SET NULL"), nullable=True
    )
    referral_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    commission_rate: Mapped[Decimal | None] = mapped_column(
        CommissionRateType, nullable=True
    )

    # Off-platform payout confirmation
    paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    tx_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Earning(id={self.id}, user_id={self.user_id}, "
            f"type={self.earning_type}, amount={self.amount}, "
            f"order={self.source_order_id})>"
        )
