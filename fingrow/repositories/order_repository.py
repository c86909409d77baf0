"""
Order repository.

Data access layer for Order and OrderTransition models.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fingrow.models.enums import OrderStatus
from fingrow.models.order import Order, OrderTransition
from fingrow.repositories.base import BaseRepository
from fingrow.utils.datetime_utils import utc_now


class OrderRepository(BaseRepository[Order]):
    """Order repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize order repository."""
        super().__init__(Order, session)

    async def compare_and_set_status(
        self,
        order_id: int,
        expected_status: str,
        expected_version: int,
        new_status: str,
        **fields: Any,
    ) -> bool:
        """
        Move order to ``new_status`` only if nobody changed it since it was read.

        Args:
            order_id: Order ID
            expected_status: Status observed by the caller
            expected_version: Version observed by the caller
            new_status: Target status
            **fields: Extra columns written with the status (timestamps,
                tracking data)

        Returns:
            True if the row was updated, False if it changed concurrently
        """
        stmt = (
            update(Order)
            .where(
                Order.id == order_id,
                Order.status == expected_status,
                Order.version == expected_version,
            )
            .values(
                status=new_status,
                version=Order.version + 1,
                updated_at=utc_now(),
                **fields,
            )
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def add_transition(
        self,
        order_id: int,
        from_status: str,
        to_status: str,
        actor_id: int | None,
    ) -> OrderTransition:
        """
        Append an accepted status change to the audit log.

        Args:
            order_id: Order ID
            from_status: Previous status
            to_status: New status
            actor_id: Acting user (None for the system)

        Returns:
            Created transition record
        """
        transition = OrderTransition(
            order_id=order_id,
            from_status=from_status,
            to_status=to_status,
            actor_id=actor_id,
        )
        self.session.add(transition)
        await self.session.flush()
        return transition

    async def get_transitions(self, order_id: int) -> list[OrderTransition]:
        """
        Get audit log of an order, oldest first.

        Args:
            order_id: Order ID

        Returns:
            List of transitions
        """
        stmt = (
            select(OrderTransition)
            .where(OrderTransition.order_id == order_id)
            .order_by(OrderTransition.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_overdue_shipped(
        self, shipped_before: datetime, limit: int
    ) -> list[Order]:
        """
        Get shipped orders the buyer never confirmed.

        Args:
            shipped_before: Cut-off moment
            limit: Max orders returned

        Returns:
            Orders oldest shipment first
        """
        stmt = (
            select(Order)
            .where(
                Order.status == OrderStatus.SHIPPED.value,
                Order.shipped_at < shipped_before,
            )
            .order_by(Order.shipped_at)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_completed_summary(self) -> dict[str, Decimal | int]:
        """
        Aggregate completed orders.

        Returns:
            Dict with count, total_amount and fee_total
        """
        stmt = select(
            func.count(Order.id).label("count"),
            func.coalesce(func.sum(Order.total_amount), 0).label("total_amount"),
            func.coalesce(func.sum(Order.community_fee), 0).label("fee_total"),
        ).where(Order.status == OrderStatus.COMPLETED.value)

        result = await self.session.execute(stmt)
        row = result.one()
        return {
            "count": row.count,
            "total_amount": Decimal(row.total_amount),
            "fee_total": Decimal(row.fee_total),
        }
