"""
Product repository.

Data access layer for Product model.
"""

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from fingrow.models.enums import ProductStatus
from fingrow.models.product import Product
from fingrow.repositories.base import BaseRepository


class ProductRepository(BaseRepository[Product]):
    """Product repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize product repository."""
        super().__init__(Product, session)

    async def get_by_seller(
        self, seller_id: int, status: str | None = None
    ) -> list[Product]:
        """
        Get listings of a seller.

        Args:
            seller_id: Seller user ID
            status: Optional ProductStatus filter

        Returns:
            List of products
        """
        filters: dict = {"seller_id": seller_id}
        if status:
            filters["status"] = status
        return await self.find_by(**filters)

    async def mark_sold(self, product_id: int) -> bool:
        """
        Flip product to sold unless it already is.

        Args:
            product_id: Product ID

        Returns:
            True if this call made the flip
        """
        stmt = (
            update(Product)
            .where(
                Product.id == product_id,
                Product.status != ProductStatus.SOLD.value,
            )
            .values(status=ProductStatus.SOLD.value)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1
