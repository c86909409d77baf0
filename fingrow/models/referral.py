"""
Referral model.

One row per (ancestor, descendant) pair inside the commission depth,
created when the descendant registers.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from fingrow.models.base import Base
from fingrow.models.enums import ReferralStatus
from fingrow.models.types import CommissionRateType, MoneyType


class Referral(Base):
    """Referral relationship at a given level."""

    __tablename__ = "referrals"
    __table_args__ = (
        UniqueConstraint(
            "referrer_id", "referred_id", name="uq_referral_pair"
        ),
        CheckConstraint("level >= 1", name="check_referral_level_positive"),
        CheckConstraint(
            "referrer_id <> referred_id", name="check_referral_not_self"
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    referrer_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    referred_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    commission_rate: Mapped[Decimal] = mapped_column(
        CommissionRateType, nullable=False
    )
    # Running sum, never decreases
    total_earnings: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(16), default=ReferralStatus.ACTIVE.value, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Referral(referrer={self.referrer_id}, "
            f"referred={self.referred_id}, level={self.level})>"
        )
