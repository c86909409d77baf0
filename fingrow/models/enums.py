"""
Status and type enumerations shared by models and services.
"""

from enum import StrEnum


class OrderStatus(StrEnum):
    """Order lifecycle states."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    PAID = "paid"
    PAYMENT_VERIFIED = "payment_verified"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_ORDER_STATUSES


TERMINAL_ORDER_STATUSES = frozenset(
    {OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.REFUNDED}
)


class ProductStatus(StrEnum):
    """Listing status."""

    ACTIVE = "active"
    SOLD = "sold"
    SUSPENDED = "suspended"
    INACTIVE = "inactive"


class EarningType(StrEnum):
    """Ledger entry kind.

    COMMISSION is reserved for manual platform credits; settlement
    only writes SALE and REFERRAL.
    """

    SALE = "sale"
    REFERRAL = "referral"
    COMMISSION = "commission"


class ReferralStatus(StrEnum):
    """Referral relationship status."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class InviterAssignment(StrEnum):
    """How a user got attached to the referral tree."""

    DIRECT_INVITE = "direct_invite"  # BIC: registered with an invite code
    DEFAULT_ASSIGNED = "default_assigned"  # NIC: attached to the root
    ROOT = "root"


class RateSource(StrEnum):
    """Where an order's conversion rate came from."""

    LOCKED = "locked"
    CURRENT = "current"
