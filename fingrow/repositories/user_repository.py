"""
User repository.

Data access layer for User model. Balance and statistic changes are
single atomic UPDATE statements so concurrent settlements never lose
an increment.
"""

from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fingrow.models.user import User
from fingrow.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """User repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user repository."""
        super().__init__(User, session)

    async def get_by_username(self, username: str) -> User | None:
        """
        Get user by username.

        Args:
            username: Unique username

        Returns:
            User or None
        """
        return await self.get_by(username=username)

    async def get_by_invite_code(self, invite_code: str) -> User | None:
        """
        Get user by invite code (codes are stored upper-case).

        Args:
            invite_code: Invite code in any case

        Returns:
            User or None
        """
        return await self.get_by(invite_code=invite_code.strip().upper())

    async def get_inviter_link(self, user_id: int) -> tuple[int, int | None] | None:
        """
        Read only the inviter pointer of a user.

        Args:
            user_id: User ID

        Returns:
            (user_id, inviter_id) or None if the user does not exist
        """
        stmt = select(User.id, User.inviter_id).where(User.id == user_id)
        result = await self.session.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return None
        return row.id, row.inviter_id

    async def set_inviter_if_unset(
        self, user_id: int, inviter_id: int | None, assignment: str
    ) -> bool:
        """
        Attach user to an inviter unless the assignment was already made.

        Args:
            user_id: User being attached
            inviter_id: Inviter user ID (None only for the root)
            assignment: InviterAssignment value

        Returns:
            True if this call made the assignment
        """
        stmt = (
            update(User)
            .where(
                User.id == user_id,
                User.inviter_id.is_(None),
                User.inviter_assignment.is_(None),
            )
            .values(inviter_id=inviter_id, inviter_assignment=assignment)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def credit_sale(
        self, user_id: int, payout: Decimal, sale_amount: Decimal
    ) -> bool:
        """
        Credit a seller payout and record the sale.

        Args:
            user_id: Seller ID
            payout: Amount credited to the wallet
            sale_amount: Order total counted in sales statistics

        Returns:
            True if the user row was updated
        """
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(
                wallet_balance=User.wallet_balance + payout,
                earnings_total=User.earnings_total + payout,
                earnings_from_sales=User.earnings_from_sales + payout,
                sales_count=User.sales_count + 1,
                sales_total=User.sales_total + sale_amount,
            )
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def credit_referral(self, user_id: int, amount: Decimal) -> bool:
        """
        Credit a referral commission.

        Args:
            user_id: Ancestor ID
            amount: Commission amount

        Returns:
            True if the user row was updated
        """
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(
                wallet_balance=User.wallet_balance + amount,
                earnings_total=User.earnings_total + amount,
                earnings_from_referrals=User.earnings_from_referrals + amount,
            )
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def record_purchase(self, user_id: int, amount: Decimal) -> bool:
        """
        Count a completed purchase for the buyer.

        Args:
            user_id: Buyer ID
            amount: Order total

        Returns:
            True if the user row was updated
        """
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(
                purchases_count=User.purchases_count + 1,
                purchases_total=User.purchases_total + amount,
            )
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def increment_referrals_total(self, user_id: int) -> None:
        """
        Increment the direct-invite counter.

        Args:
            user_id: Inviter ID
        """
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(referrals_total=User.referrals_total + 1)
            .execution_options(synchronize_session="fetch")
        )
        await self.session.execute(stmt)

    async def get_root(self) -> User | None:
        """
        Get the root account of the referral tree.

        Returns:
            Root user or None if the tree has no root yet
        """
        return await self.get_by(is_root=True)
