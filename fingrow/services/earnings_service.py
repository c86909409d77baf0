"""
Earnings service.

Read side of the ledger plus off-platform payout confirmation.
"""

import math
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from fingrow.config.operational_constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from fingrow.models.earning import Earning
from fingrow.models.enums import EarningType
from fingrow.repositories.earning_repository import EarningRepository
from fingrow.repositories.order_repository import OrderRepository
from fingrow.services.base_service import BaseService, transaction
from fingrow.services.core_config import CoreConfig
from fingrow.utils.datetime_utils import utc_now
from fingrow.utils.exceptions import NotFoundError, PreconditionError
from fingrow.utils.money import ZERO


class EarningsService(BaseService):
    """Ledger queries, payout marking and the admin overview."""

    def __init__(
        self, session: AsyncSession, config: CoreConfig | None = None
    ) -> None:
        """Initialize earnings service."""
        super().__init__(session, config)
        self.earning_repo = EarningRepository(session)
        self.order_repo = OrderRepository(session)

    async def get_pending_payouts(
        self,
        user_id: int,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> dict[str, Any]:
        """
        Get unpaid earnings of a user with pagination.

        Args:
            user_id: Beneficiary user ID
            page: Page number (1-indexed)
            limit: Items per page (capped)

        Returns:
            Dict with earnings, total_count, total_amount, page, pages
        """
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        page = max(page, 1)

        earnings = await self.earning_repo.get_unpaid_for_user(
            user_id, limit=limit, offset=(page - 1) * limit
        )
        total_count, total_amount = await self.earning_repo.get_unpaid_summary(
            user_id
        )

        return {
            "earnings": earnings,
            "total_count": total_count,
            "total_amount": total_amount,
            "page": page,
            "pages": math.ceil(total_count / limit) if total_count else 0,
        }

    @transaction
    async def mark_paid(self, earning_id: int, tx_hash: str) -> Earning:
        """
        Record that an earning was paid out.

        Args:
            earning_id: Earning ID
            tx_hash: Payout transaction hash

        Returns:
            Updated earning

        Raises:
            NotFoundError: Unknown earning
            PreconditionError: Already paid or empty tx hash
        """
        if not tx_hash or not tx_hash.strip():
            raise PreconditionError(
                "Transaction hash is required", earning_id=earning_id
            )

        earning = await self.earning_repo.get_by_id(earning_id)
        if not earning:
            raise NotFoundError(
                f"Earning {earning_id} not found", earning_id=earning_id
            )
        if earning.paid:
            raise PreconditionError(
                f"Earning {earning_id} is already paid",
                earning_id=earning_id,
                tx_hash=earning.tx_hash,
            )

        earning = await self.earning_repo.update(
            earning_id, paid=True, paid_at=utc_now(), tx_hash=tx_hash.strip()
        )

        self.logger.info(
            "Earning marked as paid",
            extra={
                "earning_id": earning_id,
                "amount": str(earning.amount),
                "tx_hash": earning.tx_hash,
            },
        )
        return earning

    async def get_order_earnings(self, order_id: int) -> list[Earning]:
        return await self.earning_repo.get_by_source_order(order_id)

    async def get_overview(self) -> dict[str, Any]:
        """
        Platform-wide ledger overview.

        The community pool is what the fee pools of completed orders
        keep after referral commissions (unclaimed levels and the root
        account's share).

        Returns:
            Dict with per-type totals, completed order stats, fee pool,
            referral payouts and community pool
        """
        by_type = await self.earning_repo.get_totals_by_type()
        completed = await self.order_repo.get_completed_summary()

        empty = {"count": 0, "amount": ZERO, "amount_wld": ZERO, "paid": 0}
        totals = {
            earning_type.value: by_type.get(earning_type.value, dict(empty))
            for earning_type in EarningType
        }

        referral_paid: Decimal = totals[EarningType.REFERRAL.value]["amount"]
        fee_pool: Decimal = completed["fee_total"]

        return {
            "totals_by_type": totals,
            "completed_orders": completed["count"],
            "sales_volume": completed["total_amount"],
            "fee_pool": fee_pool,
            "referral_payouts": referral_paid,
            "community_pool": fee_pool - referral_paid,
        }
