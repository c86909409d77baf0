"""
Order lifecycle manager.

Mediates every status change of an order. Each transition is checked
against the transition table, the actor's role on the order and the
edge's preconditions, then written with a compare-and-set on
(status, version). The ``delivered -> completed`` edge settles
commissions inside the same transaction: an order is never committed as
``completed`` without its earnings.
"""

import secrets
from decimal import Decimal

from sqlalchemy.exc import IntegrityError as DBIntegrityError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fingrow.config.business_constants import ORDER_NUMBER_PREFIX
from fingrow.config.operational_constants import (
    AUTO_DELIVERY_BATCH_SIZE,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
)
from fingrow.models.enums import OrderStatus
from fingrow.models.order import Order, OrderTransition
from fingrow.repositories.order_repository import OrderRepository
from fingrow.repositories.product_repository import ProductRepository
from fingrow.repositories.user_repository import UserRepository
from fingrow.services.base_service import BaseService, log_operation, transaction
from fingrow.services.commission.engine import CommissionEngine
from fingrow.services.core_config import CoreConfig
from fingrow.services.exchange_rate.lock import ExchangeRateLock
from fingrow.services.order.state_machine import (
    STATUS_TIMESTAMP_FIELDS,
    ActorRole,
    allowed_roles,
    is_post_shipment_cancel,
)
from fingrow.utils.datetime_utils import days_ago, utc_now
from fingrow.utils.db_decorators import with_rollback_on_error
from fingrow.utils.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PreconditionError,
    SettlementError,
    UnauthorizedActorError,
)
from fingrow.utils.key_guard import KeyGuard
from fingrow.utils.money import percent_of, quantize_money, to_wld


# Single writer per order id inside this process
order_guard = KeyGuard("order")


def generate_order_number() -> str:
    """Public order number: ORD + UTC timestamp + random suffix."""
    return (
        f"{ORDER_NUMBER_PREFIX}{utc_now():%Y%m%d%H%M%S}"
        f"{secrets.token_hex(3).upper()}"
    )


class OrderLifecycleManager(BaseService):
    """Order state machine with actor gating and settlement on completion."""

    def __init__(
        self,
        session: AsyncSession,
        config: CoreConfig | None = None,
        commission_engine: CommissionEngine | None = None,
        rate_lock: ExchangeRateLock | None = None,
        guard: KeyGuard | None = None,
    ) -> None:
        """
        Initialize order lifecycle manager.

        Args:
            session: Async database session
            config: Cancellation policy, delivery timeout, commission rules
            commission_engine: Settlement (same session by default)
            rate_lock: Rate stamping for new orders
            guard: Per-order write guard (shared module guard by default)
        """
        super().__init__(session, config)
        self.commission_engine = commission_engine or CommissionEngine(
            session, self.config
        )
        self.rate_lock = rate_lock or ExchangeRateLock(session, self.config)
        self.guard = guard or order_guard
        self.order_repo = OrderRepository(session)
        self.product_repo = ProductRepository(session)
        self.user_repo = UserRepository(session)

    # ------------------------------------------------------------------
    # Creation and queries
    # ------------------------------------------------------------------

    @transaction
    async def create_order(
        self,
        buyer_id: int,
        product_id: int,
        shipping_fee: Decimal = Decimal("0"),
        rate_scope: str | None = None,
    ) -> Order:
        """
        Create a pending order for a product.

        Price, fee and conversion rate are snapshotted here and never
        change afterwards. The rate comes from the active lock of
        ``rate_scope`` when there is one, else from the live feed.

        Args:
            buyer_id: Buyer user ID
            product_id: Product ID
            shipping_fee: Shipping cost in the product currency
            rate_scope: Checkout session key holding a rate lock

        Returns:
            Created order in ``pending``

        Raises:
            NotFoundError: Unknown buyer or product
            PreconditionError: Product unavailable, self-purchase,
                negative shipping or no known rate
        """
        buyer = await self.user_repo.get_by_id(buyer_id)
        if not buyer:
            raise NotFoundError(f"User {buyer_id} not found", user_id=buyer_id)
        if not buyer.is_active:
            raise PreconditionError(f"User {buyer_id} is disabled", user_id=buyer_id)

        product = await self.product_repo.get_by_id(product_id)
        if not product:
            raise NotFoundError(
                f"Product {product_id} not found", product_id=product_id
            )
        if not product.is_available:
            raise PreconditionError(
                f"Product {product_id} is {product.status}",
                product_id=product_id,
            )
        if product.seller_id == buyer_id:
            raise PreconditionError(
                "Sellers cannot buy their own products",
                product_id=product_id,
                user_id=buyer_id,
            )

        shipping_fee = quantize_money(Decimal(str(shipping_fee)))
        if shipping_fee < 0:
            raise PreconditionError(
                "Shipping fee cannot be negative", shipping_fee=str(shipping_fee)
            )

        quote = await self.rate_lock.rate_for(product.currency_code, rate_scope)

        subtotal = quantize_money(product.price_local)
        total_amount = subtotal + shipping_fee

        order = await self.order_repo.create(
            order_number=generate_order_number(),
            buyer_id=buyer_id,
            seller_id=product.seller_id,
            product_id=product.id,
            status=OrderStatus.PENDING.value,
            currency_code=product.currency_code,
            subtotal=subtotal,
            shipping_fee=shipping_fee,
            total_amount=total_amount,
            fin_fee_percent=product.fin_fee_percent,
            community_fee=percent_of(subtotal, product.fin_fee_percent),
            conversion_rate=quote.rate,
            rate_locked_at=quote.as_of,
            rate_source=quote.source.value,
            total_wld=to_wld(total_amount, quote.rate),
        )

        self.logger.info(
            "Order created",
            extra={
                "order_id": order.id,
                "order_number": order.order_number,
                "buyer_id": buyer_id,
                "product_id": product_id,
                "total_amount": str(total_amount),
                "conversion_rate": str(quote.rate),
                "rate_source": quote.source.value,
            },
        )
        return order

    async def get_order(self, order_id: int) -> Order:
        """
        Get order by ID.

        Raises:
            NotFoundError: Unknown order
        """
        order = await self.order_repo.get_by_id(order_id)
        if not order:
            raise NotFoundError(f"Order {order_id} not found", order_id=order_id)
        return order

    async def get_history(self, order_id: int) -> list[OrderTransition]:
        """Accepted transitions of an order, oldest first."""
        await self.get_order(order_id)
        return await self.order_repo.get_transitions(order_id)

    async def list_orders(
        self,
        status: str | None = None,
        buyer_id: int | None = None,
        seller_id: int | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> tuple[list[Order], int]:
        """
        List orders, newest first.

        Args:
            status: Optional status filter
            buyer_id: Optional buyer filter
            seller_id: Optional seller filter
            page: Page number (1-indexed)
            limit: Page size (capped)

        Returns:
            Tuple of (orders, total_count)
        """
        return await self.order_repo.find_paginated(
            page=page,
            per_page=max(1, min(limit, MAX_PAGE_SIZE)),
            status=status,
            buyer_id=buyer_id,
            seller_id=seller_id,
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def transition(
        self,
        order_id: int,
        actor_id: int,
        target_status: str,
        *,
        tracking_number: str | None = None,
        shipping_provider: str | None = None,
        reason: str | None = None,
    ) -> Order:
        """
        Move an order along one edge of the transition table.

        Args:
            order_id: Order ID
            actor_id: Acting user
            target_status: Requested status
            tracking_number: Required for ``shipped``
            shipping_provider: Required for ``shipped``
            reason: Optional cancel/refund reason

        Returns:
            Order in its new status (committed)

        Raises:
            NotFoundError: Unknown order
            InvalidTransitionError: Edge not in the table
            UnauthorizedActorError: Missing actor or actor lacks the edge's role
            PreconditionError: Edge precondition unmet
            ConflictError: Another writer changed the order first
            SettlementError: Completion could not be settled (order
                stays ``delivered``)
        """
        if actor_id is None:
            raise UnauthorizedActorError(order_id, actor_id, str(target_status))

        return await self._guarded_transition(
            order_id,
            actor_id,
            target_status,
            tracking_number=tracking_number,
            shipping_provider=shipping_provider,
            reason=reason,
        )

    async def confirm(self, order_id: int, seller_id: int) -> Order:
        return await self.transition(order_id, seller_id, OrderStatus.CONFIRMED)

    async def mark_paid(self, order_id: int, buyer_id: int) -> Order:
        return await self.transition(order_id, buyer_id, OrderStatus.PAID)

    async def verify_payment(self, order_id: int, seller_id: int) -> Order:
        return await self.transition(order_id, seller_id, OrderStatus.PAYMENT_VERIFIED)

    async def ship(
        self,
        order_id: int,
        seller_id: int,
        tracking_number: str,
        shipping_provider: str,
    ) -> Order:
        return await self.transition(
            order_id,
            seller_id,
            OrderStatus.SHIPPED,
            tracking_number=tracking_number,
            shipping_provider=shipping_provider,
        )

    async def mark_delivered(self, order_id: int, buyer_id: int) -> Order:
        return await self.transition(order_id, buyer_id, OrderStatus.DELIVERED)

    async def complete(self, order_id: int, buyer_id: int) -> Order:
        return await self.transition(order_id, buyer_id, OrderStatus.COMPLETED)

    async def cancel(
        self, order_id: int, actor_id: int, reason: str | None = None
    ) -> Order:
        return await self.transition(
            order_id, actor_id, OrderStatus.CANCELLED, reason=reason
        )

    async def refund(
        self, order_id: int, actor_id: int, reason: str | None = None
    ) -> Order:
        return await self.transition(
            order_id, actor_id, OrderStatus.REFUNDED, reason=reason
        )

    @log_operation
    async def deliver_overdue_shipments(
        self,
        older_than_days: int | None = None,
        limit: int = AUTO_DELIVERY_BATCH_SIZE,
    ) -> int:
        """
        Mark long-shipped orders delivered on behalf of the buyer.

        Orders that change concurrently are skipped and picked up by
        the next sweep.

        Args:
            older_than_days: Timeout (config.auto_delivery_days by default)
            limit: Max orders handled per sweep

        Returns:
            Number of orders delivered
        """
        days = (
            older_than_days
            if older_than_days is not None
            else self.config.auto_delivery_days
        )
        overdue = await self.order_repo.get_overdue_shipped(days_ago(days), limit)
        order_ids = [order.id for order in overdue]

        delivered = 0
        for order_id in order_ids:
            try:
                await self._guarded_transition(
                    order_id, None, OrderStatus.DELIVERED
                )
            except (ConflictError, InvalidTransitionError) as e:
                self.logger.warning(
                    "Skipping overdue order",
                    extra={"order_id": order_id, "reason": e.message},
                )
                continue
            delivered += 1

        return delivered

    async def mark_reviewed(self, order_id: int, actor_id: int) -> Order:
        """
        Buyer flags a completed order as reviewed (once).

        Raises:
            NotFoundError: Unknown order
            UnauthorizedActorError: Actor is not the buyer
            PreconditionError: Order not completed or already reviewed
        """
        with self.guard.hold(order_id):
            return await self._apply_review(order_id, actor_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _guarded_transition(
        self,
        order_id: int,
        actor_id: int | None,
        target_status: str,
        *,
        tracking_number: str | None = None,
        shipping_provider: str | None = None,
        reason: str | None = None,
    ) -> Order:
        """Apply a transition under the order guard; ``actor_id=None`` is the system."""
        # Claimed before the first await so a concurrent caller is refused
        with self.guard.hold(order_id):
            return await self._apply_transition(
                order_id,
                actor_id,
                target_status,
                tracking_number=tracking_number,
                shipping_provider=shipping_provider,
                reason=reason,
            )

    @with_rollback_on_error
    async def _apply_transition(
        self,
        order_id: int,
        actor_id: int | None,
        target_status: str,
        *,
        tracking_number: str | None,
        shipping_provider: str | None,
        reason: str | None,
    ) -> Order:
        order = await self.get_order(order_id)
        current = OrderStatus(order.status)

        try:
            target = OrderStatus(target_status)
        except ValueError:
            raise InvalidTransitionError(
                order_id, current.value, str(target_status)
            ) from None

        roles = allowed_roles(current, target)
        if roles is None:
            self.logger.warning(
                "Invalid order transition refused",
                extra={
                    "order_id": order_id,
                    "from_status": current.value,
                    "to_status": target.value,
                    "actor_id": actor_id,
                },
            )
            raise InvalidTransitionError(order_id, current.value, target.value)

        if (
            is_post_shipment_cancel(current, target)
            and not self.config.allow_cancel_after_shipment
        ):
            raise PreconditionError(
                f"Order {order_id} cannot be cancelled after shipment",
                order_id=order_id,
                status=current.value,
            )

        actor_roles = await self._resolve_roles(order, actor_id)
        if not actor_roles & roles:
            self.logger.warning(
                "Unauthorized order transition refused",
                extra={
                    "order_id": order_id,
                    "to_status": target.value,
                    "actor_id": actor_id,
                    "actor_roles": sorted(actor_roles),
                },
            )
            raise UnauthorizedActorError(order_id, actor_id, target.value)

        fields = await self._edge_fields(
            order, target, tracking_number, shipping_provider, reason
        )
        fields[STATUS_TIMESTAMP_FIELDS[target]] = utc_now()

        updated = await self.order_repo.compare_and_set_status(
            order.id, current.value, order.version, target.value, **fields
        )
        if not updated:
            self.logger.warning(
                "Order changed concurrently",
                extra={"order_id": order_id, "expected_status": current.value},
            )
            raise ConflictError(
                f"Order {order_id} was modified concurrently",
                order_id=order_id,
            )

        try:
            await self.order_repo.add_transition(
                order.id, current.value, target.value, actor_id
            )
        except DBIntegrityError as e:
            raise ConflictError(
                f"Order {order_id} already went {current} -> {target}",
                order_id=order_id,
            ) from e

        if target == OrderStatus.COMPLETED:
            await self._finalize_completion(order)

        await self.commit()
        await self.refresh(order)

        self.logger.info(
            "Order transitioned",
            extra={
                "order_id": order.id,
                "from_status": current.value,
                "to_status": target.value,
                "actor_id": actor_id,
                "version": order.version,
            },
        )
        return order

    async def _resolve_roles(
        self, order: Order, actor_id: int | None
    ) -> frozenset[ActorRole]:
        if actor_id is None:
            return frozenset({ActorRole.SYSTEM})

        actor = await self.user_repo.get_by_id(actor_id)
        if not actor or not actor.is_active:
            return frozenset()

        roles = set()
        if actor_id == order.buyer_id:
            roles.add(ActorRole.BUYER)
        if actor_id == order.seller_id:
            roles.add(ActorRole.SELLER)
        if actor.is_admin:
            roles.add(ActorRole.ADMIN)
        return frozenset(roles)

    async def _edge_fields(
        self,
        order: Order,
        target: OrderStatus,
        tracking_number: str | None,
        shipping_provider: str | None,
        reason: str | None,
    ) -> dict:
        fields: dict = {}

        if target == OrderStatus.CONFIRMED:
            product = await self.product_repo.get_by_id(order.product_id)
            if not product or not product.is_available:
                raise PreconditionError(
                    f"Product of order {order.id} is no longer available",
                    order_id=order.id,
                    product_id=order.product_id,
                )

        elif target == OrderStatus.SHIPPED:
            tracking = (tracking_number or "").strip()
            provider = (shipping_provider or "").strip()
            if not tracking or not provider:
                raise PreconditionError(
                    "Tracking number and shipping provider are required",
                    order_id=order.id,
                )
            fields["tracking_number"] = tracking
            fields["shipping_provider"] = provider

        elif target in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
            if reason:
                fields["cancel_reason"] = reason.strip()

        return fields

    async def _finalize_completion(self, order: Order) -> None:
        try:
            result = await self.commission_engine.settle(order.id)
            if not await self.product_repo.mark_sold(order.product_id):
                self.logger.warning(
                    "Product was already sold by another order",
                    extra={"order_id": order.id, "product_id": order.product_id},
                )
            await self.user_repo.record_purchase(order.buyer_id, order.total_amount)
        except SettlementError as e:
            self.logger.error(
                "Completion blocked by settlement failure",
                extra={"order_id": order.id, "error": e.message},
            )
            raise
        except SQLAlchemyError as e:
            self.logger.exception(
                "Completion side effects failed", extra={"order_id": order.id}
            )
            raise SettlementError(
                f"Completion of order {order.id} could not be stored",
                order_id=order.id,
            ) from e

        self.logger.info(
            "Order completed and settled",
            extra={
                "order_id": order.id,
                "earnings": len(result.earnings),
                "already_settled": result.already_settled,
            },
        )

    @with_rollback_on_error
    async def _apply_review(self, order_id: int, actor_id: int) -> Order:
        order = await self.get_order(order_id)
        if order.buyer_id != actor_id:
            raise UnauthorizedActorError(order_id, actor_id, "reviewed")
        if order.status != OrderStatus.COMPLETED:
            raise PreconditionError(
                f"Order {order_id} is not completed", order_id=order_id
            )
        if order.is_reviewed:
            raise PreconditionError(
                f"Order {order_id} is already reviewed", order_id=order_id
            )

        order.is_reviewed = True
        await self.commit()
        await self.refresh(order)

        self.logger.info(
            "Order reviewed", extra={"order_id": order_id, "actor_id": actor_id}
        )
        return order
