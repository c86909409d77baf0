"""
Referral repository.

Data access layer for Referral model.
"""

from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fingrow.models.referral import Referral
from fingrow.repositories.base import BaseRepository


class ReferralRepository(BaseRepository[Referral]):
    """Referral repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral repository."""
        super().__init__(Referral, session)

    async def get_for_referred(self, referred_id: int) -> list[Referral]:
        """
        Get all relationships where user is the descendant, nearest first.

        Args:
            referred_id: Descendant user ID

        Returns:
            List of referrals ordered by level
        """
        stmt = (
            select(Referral)
            .where(Referral.referred_id == referred_id)
            .order_by(Referral.level)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_pair(
        self, referrer_id: int, referred_id: int
    ) -> Referral | None:
        """
        Get relationship between an ancestor and a descendant.

        Args:
            referrer_id: Ancestor user ID
            referred_id: Descendant user ID

        Returns:
            Referral or None
        """
        return await self.get_by(
            referrer_id=referrer_id, referred_id=referred_id
        )

    async def add_earnings(self, referral_id: int, amount: Decimal) -> None:
        """
        Add to the running commission total of a relationship.

        Args:
            referral_id: Referral ID
            amount: Non-negative commission amount
        """
        stmt = (
            update(Referral)
            .where(Referral.id == referral_id)
            .values(total_earnings=Referral.total_earnings + amount)
            .execution_options(synchronize_session="fetch")
        )
        await self.session.execute(stmt)

    async def get_level_counts(
        self, referrer_id: int, max_depth: int
    ) -> dict[int, int]:
        """
        Get network size per level in a single query.

        Args:
            referrer_id: Referrer user ID
            max_depth: Deepest level reported

        Returns:
            Dict mapping every level 1..max_depth to its count
        """
        stmt = (
            select(
                Referral.level,
                func.count(Referral.id).label("count")
            )
            .where(
                Referral.referrer_id == referrer_id,
                Referral.level <= max_depth,
            )
            .group_by(Referral.level)
        )

        result = await self.session.execute(stmt)

        level_counts = {level: 0 for level in range(1, max_depth + 1)}
        for row in result.all():
            level_counts[row.level] = row.count

        return level_counts
