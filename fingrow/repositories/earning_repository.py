"""
Earning repository.

Data access layer for Earning model.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fingrow.models.earning import Earning
from fingrow.repositories.base import BaseRepository


class EarningRepository(BaseRepository[Earning]):
    """Earning repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize earning repository."""
        super().__init__(Earning, session)

    async def get_by_source_order(self, order_id: int) -> list[Earning]:
        """
        Get every ledger entry produced by an order.

        Args:
            order_id: Source order ID

        Returns:
            Earnings ordered by ID
        """
        return await self.find_by(source_order_id=order_id)

    async def get_unpaid_for_user(
        self, user_id: int, limit: int, offset: int
    ) -> list[Earning]:
        """
        Get earnings not yet paid out, newest first.

        Args:
            user_id: Beneficiary user ID
            limit: Page size
            offset: Rows to skip

        Returns:
            List of earnings
        """
        stmt = (
            select(Earning)
            .where(Earning.user_id == user_id, Earning.paid.is_(False))
            .order_by(Earning.created_at.desc(), Earning.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_unpaid_summary(self, user_id: int) -> tuple[int, Decimal]:
        """
        Count and sum unpaid earnings of a user.

        Args:
            user_id: Beneficiary user ID

        Returns:
            Tuple of (count, total_amount)
        """
        stmt = select(
            func.count(Earning.id).label("total"),
            func.sum(Earning.amount).label("total_amount"),
        ).where(Earning.user_id == user_id, Earning.paid.is_(False))

        result = await self.session.execute(stmt)
        row = result.one()
        return row.total or 0, Decimal(row.total_amount or 0)

    async def get_totals_by_type(self) -> dict[str, dict[str, Decimal | int]]:
        """
        Aggregate the whole ledger per earning type.

        Returns:
            Dict like {"sale": {"count": 3, "amount": ..., "amount_wld": ...,
            "paid": 1}}
        """
        stmt = (
            select(
                Earning.earning_type,
                func.count(Earning.id).label("count"),
                func.coalesce(func.sum(Earning.amount), 0).label("amount"),
                func.coalesce(func.sum(Earning.amount_wld), 0).label("amount_wld"),
                func.count(Earning.id).filter(Earning.paid.is_(True)).label("paid"),
            )
            .group_by(Earning.earning_type)
        )
        result = await self.session.execute(stmt)

        return {
            row.earning_type: {
                "count": row.count,
                "amount": Decimal(row.amount),
                "amount_wld": Decimal(row.amount_wld),
                "paid": row.paid,
            }
            for row in result.all()
        }
