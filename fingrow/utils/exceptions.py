"""
Exception types for the marketplace core.

Every core operation either succeeds or raises one of these.
"""

from typing import Any


class FingrowError(Exception):
    """Base class for all core errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        return self.message


class NotFoundError(FingrowError):
    """Referenced order, user, product, earning or invite code does not exist."""


class InvalidTransitionError(FingrowError):
    """Order status edge is not permitted from the current status."""

    def __init__(
        self, order_id: int, from_status: str, to_status: str
    ) -> None:
        super().__init__(
            f"Order {order_id}: transition {from_status} -> {to_status} "
            "is not allowed",
            order_id=order_id,
            from_status=from_status,
            to_status=to_status,
        )
        self.order_id = order_id
        self.from_status = from_status
        self.to_status = to_status


class UnauthorizedActorError(FingrowError):
    """Actor does not hold the role required for the edge."""

    def __init__(
        self, order_id: int, actor_id: int | None, to_status: str
    ) -> None:
        super().__init__(
            f"Order {order_id}: actor {actor_id} may not move order "
            f"to {to_status}",
            order_id=order_id,
            actor_id=actor_id,
            to_status=to_status,
        )
        self.order_id = order_id
        self.actor_id = actor_id
        self.to_status = to_status


class PreconditionError(FingrowError):
    """Data required by the operation is missing or in the wrong state."""


class ConflictError(FingrowError):
    """A concurrent writer changed the record first. Retry after re-reading."""


class IntegrityError(FingrowError):
    """Referral graph is inconsistent (cycle or self-invite)."""


class SettlementError(FingrowError):
    """Commission settlement could not be computed or persisted."""


class RateFeedError(FingrowError):
    """Live exchange-rate feed returned an error or unusable payload."""
