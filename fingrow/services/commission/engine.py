"""
Commission engine.

Turns a completed order into ledger entries: one sale earning for the
seller and one referral earning per paid ancestor. Runs inside the
caller's transaction so the ``completed`` status and the ledger are
committed (or rolled back) together.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fingrow.models.earning import Earning
from fingrow.models.enums import EarningType, OrderStatus
from fingrow.models.order import Order
from fingrow.repositories.earning_repository import EarningRepository
from fingrow.repositories.order_repository import OrderRepository
from fingrow.repositories.referral_repository import ReferralRepository
from fingrow.repositories.user_repository import UserRepository
from fingrow.services.base_service import BaseService
from fingrow.services.commission.calculator import SettlementPlan, calculate
from fingrow.services.core_config import CoreConfig
from fingrow.services.referral.graph import ReferralGraph
from fingrow.utils.exceptions import (
    FingrowError,
    NotFoundError,
    SettlementError,
)
from fingrow.utils.money import ZERO, to_wld


@dataclass
class SettlementResult:
    """Outcome of settling one order."""

    order_id: int
    fee_amount: Decimal
    seller_receive: Decimal
    referral_total: Decimal
    earnings: list[Earning] = field(default_factory=list)
    already_settled: bool = False


class CommissionEngine(BaseService):
    """Settles completed orders into the earnings ledger."""

    def __init__(
        self,
        session: AsyncSession,
        config: CoreConfig | None = None,
        referral_graph: ReferralGraph | None = None,
    ) -> None:
        """
        Initialize commission engine.

        Args:
            session: Async database session (shared with the caller)
            config: Rate table and depth
            referral_graph: Ancestor lookups (built on the same session
                when omitted)
        """
        super().__init__(session, config)
        self.referral_graph = referral_graph or ReferralGraph(session, self.config)
        self.order_repo = OrderRepository(session)
        self.earning_repo = EarningRepository(session)
        self.referral_repo = ReferralRepository(session)
        self.user_repo = UserRepository(session)

    async def settle(self, order_id: int) -> SettlementResult:
        """
        Distribute a completed order's money.

        Idempotent: when earnings already exist for the order the
        previous result is returned and nothing is written. Flushes
        only; the caller commits or rolls back.

        Args:
            order_id: Order ID

        Returns:
            SettlementResult

        Raises:
            NotFoundError: Unknown order
            SettlementError: Order not completed, broken referral chain
                or persistence failure
        """
        order = await self.order_repo.get_by_id(order_id)
        if not order:
            raise NotFoundError(f"Order {order_id} not found", order_id=order_id)

        existing = await self.earning_repo.get_by_source_order(order_id)
        if existing:
            self.logger.info(
                "Order already settled, returning prior result",
                extra={"order_id": order_id, "earnings": len(existing)},
            )
            return self._result_from_ledger(order, existing)

        if order.status != OrderStatus.COMPLETED:
            raise SettlementError(
                f"Order {order_id} is {order.status}, not completed",
                order_id=order_id,
                status=order.status,
            )

        try:
            plan = await self._plan(order)
            earnings = await self._persist(order, plan)
        except SettlementError:
            raise
        except FingrowError as e:
            self.logger.error(
                "Settlement aborted",
                extra={"order_id": order_id, "error": e.message},
            )
            raise SettlementError(
                f"Settlement of order {order_id} failed: {e.message}",
                order_id=order_id,
            ) from e
        except SQLAlchemyError as e:
            self.logger.exception(
                "Settlement persistence failed", extra={"order_id": order_id}
            )
            raise SettlementError(
                f"Settlement of order {order_id} could not be stored",
                order_id=order_id,
            ) from e

        self.logger.info(
            "Order settled",
            extra={
                "order_id": order_id,
                "fee_amount": str(plan.fee_amount),
                "seller_receive": str(plan.seller_receive),
                "referral_total": str(plan.referral_total),
                "referral_levels": len(plan.lines),
            },
        )

        return SettlementResult(
            order_id=order_id,
            fee_amount=plan.fee_amount,
            seller_receive=plan.seller_receive,
            referral_total=plan.referral_total,
            earnings=earnings,
        )

    async def _plan(self, order: Order) -> SettlementPlan:
        chain = await self.referral_graph.ascend(
            order.seller_id, self.config.referral_max_depth
        )

        # The root account closes the tree; its share stays in the community pool
        root = await self.user_repo.get_root()
        if root is not None:
            chain = [a for a in chain if a.user_id != root.id]

        plan = calculate(
            order,
            self.config.referral_rates,
            self.config.referral_max_depth,
            chain,
        )

        if (
            plan.referral_total > plan.fee_amount
            or plan.total_distributed > order.total_amount
        ):
            raise SettlementError(
                f"Settlement of order {order.id} exceeds the order total",
                order_id=order.id,
            )
        return plan

    async def _persist(self, order: Order, plan: SettlementPlan) -> list[Earning]:
        earnings: list[Earning] = []

        for line in plan.lines:
            referral = await self.referral_repo.get_pair(line.user_id, order.seller_id)
            earning = await self.earning_repo.create(
                user_id=line.user_id,
                earning_type=EarningType.REFERRAL.value,
                amount=line.amount,
                currency_code=order.currency_code,
                amount_wld=to_wld(line.amount, order.conversion_rate),
                source_order_id=order.id,
                referral_id=referral.id if referral else None,
                referral_level=line.level,
                commission_rate=line.rate,
            )
            if referral:
                await self.referral_repo.add_earnings(referral.id, line.amount)
            await self.user_repo.credit_referral(line.user_id, line.amount)
            earnings.append(earning)

        sale = await self.earning_repo.create(
            user_id=order.seller_id,
            earning_type=EarningType.SALE.value,
            amount=plan.seller_receive,
            currency_code=order.currency_code,
            amount_wld=to_wld(plan.seller_receive, order.conversion_rate),
            source_order_id=order.id,
        )
        await self.user_repo.credit_sale(
            order.seller_id, plan.seller_receive, order.total_amount
        )
        earnings.append(sale)

        await self.session.flush()
        return earnings

    def _result_from_ledger(
        self, order: Order, earnings: list[Earning]
    ) -> SettlementResult:
        seller_receive = sum(
            (e.amount for e in earnings if e.earning_type == EarningType.SALE),
            ZERO,
        )
        referral_total = sum(
            (e.amount for e in earnings if e.earning_type == EarningType.REFERRAL),
            ZERO,
        )
        return SettlementResult(
            order_id=order.id,
            fee_amount=order.community_fee,
            seller_receive=seller_receive,
            referral_total=referral_total,
            earnings=earnings,
            already_settled=True,
        )
