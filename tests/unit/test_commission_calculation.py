"""
Unit tests for commission calculation.

Covers the pure money split of one order:
- Seller payout and fee pool
- Per-level referral lines
- Depth cut-off and short chains
- Rounding never exceeding the fee pool
"""

from decimal import Decimal

import pytest

from fingrow.services.commission.calculator import (
    SettlementPlan,
    calculate,
    fee_pool,
)
from fingrow.services.referral.graph import Ancestor


class TestFeePool:
    """Test fee pool extraction from an order."""

    def test_uses_stamped_community_fee(self, mock_order):
        """Stamped fee wins over the percentage."""
        mock_order.community_fee = Decimal("20.5")

        assert fee_pool(mock_order) == Decimal("20.5")

    def test_falls_back_to_percentage_of_subtotal(self, mock_order):
        """Without a stamped fee it is recomputed from the subtotal."""
        mock_order.community_fee = None
        mock_order.subtotal = Decimal("300")
        mock_order.fin_fee_percent = Decimal("7")

        assert fee_pool(mock_order) == Decimal("21")


class TestCalculate:
    """Test settlement plan calculation."""

    def test_three_level_chain_example(
        self, mock_order, three_level_chain, core_config
    ):
        """
        Order of 300 with a 7% fee and a 3-level chain.

        Fee 21, seller 279, lines 2.1 / 1.05 / 0.63.
        """
        plan = calculate(
            mock_order,
            core_config.referral_rates,
            core_config.referral_max_depth,
            three_level_chain,
        )

        assert plan.fee_amount == Decimal("21")
        assert plan.seller_receive == Decimal("279")
        assert [line.amount for line in plan.lines] == [
            Decimal("2.1"),
            Decimal("1.05"),
            Decimal("0.63"),
        ]
        assert [line.user_id for line in plan.lines] == [101, 102, 103]
        assert [line.level for line in plan.lines] == [1, 2, 3]
        assert plan.referral_total == Decimal("3.78")
        assert plan.total_distributed == Decimal("282.78")

    def test_no_chain_only_seller_paid(self, mock_order, core_config):
        """Seller without inviters: the whole fee stays in the pool."""
        plan = calculate(
            mock_order,
            core_config.referral_rates,
            core_config.referral_max_depth,
            [],
        )

        assert plan.lines == ()
        assert plan.seller_receive == Decimal("279")
        assert plan.referral_total == Decimal("0")

    def test_levels_beyond_max_depth_are_not_paid(self, mock_order, core_config):
        """Ancestors deeper than max_depth receive nothing."""
        chain = [Ancestor(user_id=200 + i, level=i) for i in range(1, 10)]

        plan = calculate(mock_order, core_config.referral_rates, 2, chain)

        assert [line.level for line in plan.lines] == [1, 2]

    def test_shipping_goes_to_seller(self, mock_order, three_level_chain, core_config):
        """Shipping is not part of the fee basis."""
        mock_order.shipping_fee = Decimal("50")
        mock_order.total_amount = Decimal("350")

        plan = calculate(
            mock_order,
            core_config.referral_rates,
            core_config.referral_max_depth,
            three_level_chain,
        )

        assert plan.fee_amount == Decimal("21")
        assert plan.seller_receive == Decimal("329")

    def test_missing_rate_level_is_skipped(self, mock_order, three_level_chain):
        """A level without a rate produces no line and no zero-amount entry."""
        rates = {1: Decimal("0.10"), 3: Decimal("0.03")}

        plan = calculate(mock_order, rates, 7, three_level_chain)

        assert [line.level for line in plan.lines] == [1, 3]

    def test_lines_capped_by_fee_pool(self, mock_order):
        """Rates summing past 1 are capped at the remaining pool."""
        rates = {1: Decimal("0.7"), 2: Decimal("0.7")}
        chain = [Ancestor(user_id=1, level=1), Ancestor(user_id=2, level=2)]

        plan = calculate(mock_order, rates, 7, chain)

        assert plan.lines[0].amount == Decimal("14.7")
        assert plan.lines[1].amount == Decimal("6.3")
        assert plan.referral_total == plan.fee_amount

    @pytest.mark.parametrize(
        "total,percent",
        [
            (Decimal("0.03"), Decimal("1")),
            (Decimal("99.99"), Decimal("3.33")),
            (Decimal("12345.67891234"), Decimal("7")),
        ],
    )
    def test_total_distributed_never_exceeds_order_total(
        self, mock_order, core_config, total, percent
    ):
        """Seller payout plus referral lines stay within the order total."""
        mock_order.subtotal = total
        mock_order.total_amount = total
        mock_order.community_fee = None
        mock_order.fin_fee_percent = percent
        chain = [Ancestor(user_id=i, level=i) for i in range(1, 8)]

        plan = calculate(
            mock_order,
            core_config.referral_rates,
            core_config.referral_max_depth,
            chain,
        )

        assert plan.referral_total <= plan.fee_amount
        assert plan.total_distributed <= total
        assert all(line.amount > 0 for line in plan.lines)


class TestSettlementPlan:
    """Test plan aggregate properties."""

    def test_empty_plan_totals(self):
        """Plan without lines distributes only the seller payout."""
        plan = SettlementPlan(
            fee_amount=Decimal("5"), seller_receive=Decimal("95")
        )

        assert plan.referral_total == Decimal("0")
        assert plan.total_distributed == Decimal("95")
