"""
Commission calculation.

Pure arithmetic for one completed order: no session, no I/O.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from fingrow.models.order import Order
from fingrow.services.referral.graph import Ancestor
from fingrow.utils.money import ZERO, percent_of, quantize_money


@dataclass(frozen=True)
class ReferralLine:
    """Commission owed to one ancestor."""

    user_id: int
    level: int
    rate: Decimal
    amount: Decimal


@dataclass(frozen=True)
class SettlementPlan:
    """Money split of one order."""

    fee_amount: Decimal
    seller_receive: Decimal
    lines: tuple[ReferralLine, ...] = field(default_factory=tuple)

    @property
    def referral_total(self) -> Decimal:
        return sum((line.amount for line in self.lines), ZERO)

    @property
    def total_distributed(self) -> Decimal:
        return self.seller_receive + self.referral_total


def fee_pool(order: Order) -> Decimal:
    """
    Fee pool of an order.

    The fee is stamped on the order at creation from the product
    subtotal (shipping excluded). Orders without a stamped fee fall back
    to recomputing it from the stamped percentage.
    """
    if order.community_fee is not None:
        return quantize_money(order.community_fee)
    return percent_of(order.subtotal, order.fin_fee_percent)


def calculate(
    order: Order,
    rates: dict[int, Decimal],
    max_depth: int,
    chain: Sequence[Ancestor],
) -> SettlementPlan:
    """
    Split an order between the seller and the seller's ancestors.

    Each ancestor at level L within ``max_depth`` receives
    ``fee * rates[L]``. Levels missing from the chain pay nothing and
    their share is not redistributed. Referral lines never exceed the
    fee pool in total, even after rounding.

    Args:
        order: Completed order
        rates: Level -> fraction of the fee pool
        max_depth: Deepest paid level
        chain: Seller's ancestors, nearest first

    Returns:
        SettlementPlan

    Example:
        total 300, fee 7% -> fee 21, seller 279;
        rates 10/5/3% -> lines 2.1, 1.05, 0.63
    """
    fee = fee_pool(order)
    seller_receive = quantize_money(order.total_amount - fee)

    remaining = fee
    lines: list[ReferralLine] = []
    for ancestor in chain:
        if ancestor.level < 1 or ancestor.level > max_depth:
            continue
        rate = rates.get(ancestor.level, ZERO)
        amount = min(quantize_money(fee * rate), remaining)
        if amount <= ZERO:
            continue
        remaining -= amount
        lines.append(
            ReferralLine(
                user_id=ancestor.user_id,
                level=ancestor.level,
                rate=rate,
                amount=amount,
            )
        )

    return SettlementPlan(
        fee_amount=fee,
        seller_receive=seller_receive,
        lines=tuple(lines),
    )
