"""
Order and OrderTransition models.

An order is created once per purchase attempt. Price fields and the
stamped exchange rate are immutable; only status (and shipping/review
details) change afterwards. Every accepted status change is appended to
``order_transitions``.
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
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fingrow.models.base import Base
from fingrow.models.enums import OrderStatus
from fingrow.models.types import MoneyType, PercentType, RateType


class Order(Base):
    """Marketplace order."""

    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("buyer_id <> seller_id", name="check_order_not_self_purchase"),
        CheckConstraint("subtotal > 0", name="check_order_subtotal_positive"),
        CheckConstraint("shipping_fee >= 0", name="check_order_shipping_non_negative"),
        CheckConstraint("conversion_rate > 0", name="check_order_rate_positive"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    order_number: Mapped[str] = mapped_column(
        String(40), unique=True, nullable=False
    )

    buyer_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    seller_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    status: Mapped[str] = mapped_column(
        String(24),
        default=OrderStatus.PENDING.value,
        nullable=False,
        index=True,
    )
    # Bumped on every transition, part of the compare-and-set
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    # Price snapshot (immutable)
    currency_code: Mapped[str] = mapped_column(String(8), nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    shipping_fee: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    fin_fee_percent: Mapped[Decimal] = mapped_column(PercentType, nullable=False)
    community_fee: Mapped[Decimal] = mapped_column(
        MoneyType,
        nullable=False,
        comment="Fee pool: subtotal * fin_fee_percent / 100",
    )

    # Exchange rate snapshot (immutable)
    conversion_rate: Mapped[Decimal] = mapped_column(
        RateType, nullable=False, comment="Price of 1 WLD in currency_code"
    )
    rate_locked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    rate_source: Mapped[str] = mapped_column(String(16), nullable=False)
    total_wld: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    # Fulfilment
    tracking_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    shipping_provider: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_reviewed: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    cancel_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

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
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    payment_verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    shipped_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    refunded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    transitions: Mapped[list["OrderTransition"]] = relationship(
        "OrderTransition",
        back_populates="order",
        order_by="OrderTransition.id",
        cascade="all, delete-orphan",
    )

    @property
    def is_terminal(self) -> bool:
        """Order reached completed, cancelled or refunded."""
        return OrderStatus(self.status).is_terminal

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Order(id={self.id}, number={self.order_number}, "
            f"status={self.status}, total={self.total_amount})>"
        )


class OrderTransition(Base):
    """Audit record of one accepted status change."""

    __tablename__ = "order_transitions"
    __table_args__ = (
        UniqueConstraint(
            "order_id", "from_status", "to_status",
            name="uq_order_transition_edge",
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    from_status: Mapped[str] = mapped_column(String(24), nullable=False)
    to_status: Mapped[str] = mapped_column(String(24), nullable=False)
    # NULL means the system (timeouts)
    actor_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    order: Mapped["Order"] = relationship("Order", back_populates="transitions")

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<OrderTransition(order_id={self.order_id}, "
            f"{self.from_status}->{self.to_status}, actor={self.actor_id})>"
        )
