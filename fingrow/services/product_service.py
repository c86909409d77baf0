"""
Product service.

Listings priced in a local currency with the seller's fin fee.
"""

from decimal import Decimal, InvalidOperation

from sqlalchemy.ext.asyncio import AsyncSession

from fingrow.models.enums import ProductStatus
from fingrow.models.product import Product
from fingrow.repositories.product_repository import ProductRepository
from fingrow.repositories.user_repository import UserRepository
from fingrow.services.base_service import BaseService, transaction
from fingrow.services.core_config import CoreConfig
from fingrow.utils.exceptions import NotFoundError, PreconditionError
from fingrow.utils.money import percent_of, quantize_money


class ProductService(BaseService):
    """Listing creation and moderation."""

    def __init__(
        self, session: AsyncSession, config: CoreConfig | None = None
    ) -> None:
        """Initialize product service."""
        super().__init__(session, config)
        self.product_repo = ProductRepository(session)
        self.user_repo = UserRepository(session)

    async def get_listing(self, product_id: int) -> Product:
        """
        Get product by ID.

        Raises:
            NotFoundError: Unknown product
        """
        product = await self.product_repo.get_by_id(product_id)
        if not product:
            raise NotFoundError(
                f"Product {product_id} not found", product_id=product_id
            )
        return product

    @transaction
    async def create_listing(
        self,
        seller_id: int,
        title: str,
        price_local: Decimal,
        currency_code: str,
        fin_fee_percent: Decimal,
    ) -> Product:
        """
        Create an active listing.

        Args:
            seller_id: Seller user ID
            title: Listing title
            price_local: Price in ``currency_code``
            currency_code: ISO currency code
            fin_fee_percent: Community share, within the configured bounds

        Returns:
            Created product with ``amount_fee`` stamped

        Raises:
            NotFoundError: Unknown seller
            PreconditionError: Disabled seller, empty title, non-positive
                price or fee outside bounds
        """
        seller = await self.user_repo.get_by_id(seller_id)
        if not seller:
            raise NotFoundError(f"User {seller_id} not found", user_id=seller_id)
        if not seller.is_active:
            raise PreconditionError(
                f"User {seller_id} is disabled", user_id=seller_id
            )
        if not title or not title.strip():
            raise PreconditionError("Listing title is required")

        price = self._validate_price(price_local)
        fee_percent = self._validate_fee_percent(fin_fee_percent)

        product = await self.product_repo.create(
            seller_id=seller_id,
            title=title.strip(),
            price_local=price,
            currency_code=currency_code.upper(),
            fin_fee_percent=fee_percent,
            amount_fee=percent_of(price, fee_percent),
            status=ProductStatus.ACTIVE.value,
        )

        self.logger.info(
            "Listing created",
            extra={
                "product_id": product.id,
                "seller_id": seller_id,
                "price_local": str(price),
                "fin_fee_percent": str(fee_percent),
            },
        )
        return product

    @transaction
    async def update_pricing(
        self,
        product_id: int,
        price_local: Decimal | None = None,
        fin_fee_percent: Decimal | None = None,
    ) -> Product:
        """
        Change price and/or fee of an active listing.

        Existing orders keep their own snapshot.

        Raises:
            NotFoundError: Unknown product
            PreconditionError: Listing not active or invalid values
        """
        product = await self.get_listing(product_id)
        if not product.is_available:
            raise PreconditionError(
                f"Product {product_id} is {product.status}",
                product_id=product_id,
            )

        price = (
            self._validate_price(price_local)
            if price_local is not None
            else product.price_local
        )
        fee_percent = (
            self._validate_fee_percent(fin_fee_percent)
            if fin_fee_percent is not None
            else product.fin_fee_percent
        )

        product.price_local = price
        product.fin_fee_percent = fee_percent
        product.amount_fee = percent_of(price, fee_percent)
        await self.session.flush()

        self.logger.info(
            "Listing repriced",
            extra={
                "product_id": product_id,
                "price_local": str(price),
                "fin_fee_percent": str(fee_percent),
            },
        )
        return product

    @transaction
    async def suspend(self, product_id: int) -> Product:
        """
        Take a listing off sale (moderation).

        Raises:
            NotFoundError: Unknown product
            PreconditionError: Product already sold
        """
        product = await self.get_listing(product_id)
        if product.status == ProductStatus.SOLD:
            raise PreconditionError(
                f"Product {product_id} is already sold", product_id=product_id
            )

        product.status = ProductStatus.SUSPENDED.value
        await self.session.flush()

        self.logger.info("Listing suspended", extra={"product_id": product_id})
        return product

    async def list_by_seller(
        self, seller_id: int, status: str | None = None
    ) -> list[Product]:
        return await self.product_repo.get_by_seller(seller_id, status)

    def _validate_fee_percent(self, value: Decimal) -> Decimal:
        try:
            percent = Decimal(str(value))
        except InvalidOperation:
            raise PreconditionError(f"Invalid fee percent {value!r}") from None

        low = self.config.fin_fee_min_percent
        high = self.config.fin_fee_max_percent
        if percent < low or percent > high:
            raise PreconditionError(
                f"Fin fee must be between {low}% and {high}%",
                fin_fee_percent=str(percent),
            )
        return percent

    @staticmethod
    def _validate_price(value: Decimal) -> Decimal:
        try:
            price = quantize_money(Decimal(str(value)))
        except InvalidOperation:
            raise PreconditionError(f"Invalid price {value!r}") from None
        if price <= 0:
            raise PreconditionError(
                "Price must be positive", price_local=str(price)
            )
        return price
