"""
Order state machine.

The transition table is the single source of truth for which status
edges exist and which actor roles may traverse them.
"""

from enum import StrEnum

from fingrow.models.enums import OrderStatus


class ActorRole(StrEnum):
    """Role an actor plays relative to one order."""

    BUYER = "buyer"
    SELLER = "seller"
    ADMIN = "admin"
    SYSTEM = "system"


_ANY_PARTY = frozenset({ActorRole.BUYER, ActorRole.SELLER, ActorRole.ADMIN})

# (from, to) -> roles allowed to traverse the edge
TRANSITIONS: dict[tuple[OrderStatus, OrderStatus], frozenset[ActorRole]] = {
    # Happy path
    (OrderStatus.PENDING, OrderStatus.CONFIRMED): frozenset({ActorRole.SELLER}),
    (OrderStatus.CONFIRMED, OrderStatus.PAID): frozenset({ActorRole.BUYER}),
    (OrderStatus.PAID, OrderStatus.PAYMENT_VERIFIED): frozenset({ActorRole.SELLER}),
    (OrderStatus.PAYMENT_VERIFIED, OrderStatus.SHIPPED): frozenset({ActorRole.SELLER}),
    (OrderStatus.SHIPPED, OrderStatus.DELIVERED): frozenset(
        {ActorRole.BUYER, ActorRole.SYSTEM}
    ),
    (OrderStatus.DELIVERED, OrderStatus.COMPLETED): frozenset({ActorRole.BUYER}),
    # Cancellation before shipment
    (OrderStatus.PENDING, OrderStatus.CANCELLED): _ANY_PARTY,
    (OrderStatus.CONFIRMED, OrderStatus.CANCELLED): _ANY_PARTY,
    (OrderStatus.PAID, OrderStatus.CANCELLED): _ANY_PARTY,
    (OrderStatus.PAYMENT_VERIFIED, OrderStatus.CANCELLED): _ANY_PARTY,
    # Cancellation after shipment (only when policy allows it)
    (OrderStatus.SHIPPED, OrderStatus.CANCELLED): frozenset({ActorRole.ADMIN}),
    (OrderStatus.DELIVERED, OrderStatus.CANCELLED): frozenset({ActorRole.ADMIN}),
    # Dispute resolution
    (OrderStatus.PAID, OrderStatus.REFUNDED): frozenset(
        {ActorRole.SELLER, ActorRole.ADMIN}
    ),
    (OrderStatus.PAYMENT_VERIFIED, OrderStatus.REFUNDED): frozenset(
        {ActorRole.SELLER, ActorRole.ADMIN}
    ),
}

POST_SHIPMENT_STATUSES = frozenset({OrderStatus.SHIPPED, OrderStatus.DELIVERED})

# Column stamped when an order enters a status
STATUS_TIMESTAMP_FIELDS: dict[OrderStatus, str] = {
    OrderStatus.CONFIRMED: "confirmed_at",
    OrderStatus.PAID: "paid_at",
    OrderStatus.PAYMENT_VERIFIED: "payment_verified_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.COMPLETED: "completed_at",
    OrderStatus.CANCELLED: "cancelled_at",
    OrderStatus.REFUNDED: "refunded_at",
}


def allowed_roles(
    from_status: OrderStatus, to_status: OrderStatus
) -> frozenset[ActorRole] | None:
    """Roles allowed on an edge, or None if the edge does not exist."""
    return TRANSITIONS.get((from_status, to_status))


def can_transition(from_status: OrderStatus, to_status: OrderStatus) -> bool:
    return (from_status, to_status) in TRANSITIONS


def next_statuses(from_status: OrderStatus) -> list[OrderStatus]:
    """Statuses reachable in one step, in table order."""
    return [to for (frm, to) in TRANSITIONS if frm == from_status]


def is_post_shipment_cancel(
    from_status: OrderStatus, to_status: OrderStatus
) -> bool:
    return to_status == OrderStatus.CANCELLED and from_status in POST_SHIPMENT_STATUSES
