"""
User model.

Represents a marketplace member, their place in the referral tree,
wallet balance and aggregated trading statistics.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fingrow.models.base import Base
from fingrow.models.enums import InviterAssignment
from fingrow.models.types import MoneyType


class User(Base):
    """User model - registered marketplace members."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "inviter_id IS NULL OR inviter_id <> id",
            name="check_user_not_own_inviter",
        ),
        CheckConstraint(
            "wallet_balance >= 0", name="check_user_balance_non_negative"
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    username: Mapped[str] = mapped_column(
        String(64), unique=True, index=True, nullable=False
    )
    invite_code: Mapped[str] = mapped_column(
        String(80), unique=True, index=True, nullable=False
    )

    # Referral tree (set once at registration)
    inviter_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    inviter_assignment: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
        comment="direct_invite (BIC), default_assigned (NIC) or root",
    )

    # Balance
    wallet_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    # Aggregated statistics
    sales_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    sales_total: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    purchases_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    purchases_total: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    earnings_total: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    earnings_from_sales: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    earnings_from_referrals: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    referrals_total: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )

    # Status flags (users are soft-disabled, never deleted)
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    is_admin: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    is_root: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    inviter: Mapped[Optional["User"]] = relationship(
        "User",
        remote_side=[id],
        foreign_keys=[inviter_id],
    )

    @property
    def is_default_assigned(self) -> bool:
        """True for NIC users attached to the root account."""
        return self.inviter_assignment == InviterAssignment.DEFAULT_ASSIGNED

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<User(id={self.id}, username={self.username}, "
            f"inviter_id={self.inviter_id})>"
        )
