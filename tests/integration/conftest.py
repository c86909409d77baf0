"""
Fixtures for integration tests.

Each test gets its own SQLite database file (aiosqlite) with the full
schema, and a ``Marketplace`` helper that drives the real services.
"""

from decimal import Decimal

import pytest
import pytest_asyncio

from fingrow.config.database import create_engine, create_session_maker, create_tables
from fingrow.models.order import Order
from fingrow.models.product import Product
from fingrow.models.user import User
from fingrow.services.earnings_service import EarningsService
from fingrow.services.exchange_rate.lock import ExchangeRateLock
from fingrow.services.order.manager import OrderLifecycleManager
from fingrow.services.product_service import ProductService
from fingrow.services.referral.graph import ReferralGraph
from fingrow.services.user_service import UserService
from fingrow.utils.key_guard import KeyGuard


THB_RATE = Decimal("30")


class Marketplace:
    """Services sharing one session, plus shortcuts for common setups."""

    def __init__(self, session, config, order_guard: KeyGuard) -> None:
        self.session = session
        self.config = config
        self.users = UserService(session, config)
        self.products = ProductService(session, config)
        self.rates = ExchangeRateLock(session, config)
        self.orders = OrderLifecycleManager(session, config, guard=order_guard)
        self.graph = ReferralGraph(session, config)
        self.earnings = EarningsService(session, config)

    async def root(self) -> User:
        return await self.users.create_root("fingrow")

    async def chain(self, length: int, prefix: str = "member") -> list[User]:
        """
        Register ``length`` users, each invited by the previous one.

        The first one is attached to the root (NIC).

        Returns:
            Users top-down (index 0 is nearest to the root)
        """
        users: list[User] = []
        invite_code = None
        for i in range(length):
            user = await self.users.register(f"{prefix}{i}", invite_code)
            users.append(user)
            invite_code = user.invite_code
        return users

    async def listing(
        self,
        seller: User,
        price: str = "300",
        fee_percent: str = "7",
        currency: str = "THB",
    ) -> Product:
        return await self.products.create_listing(
            seller.id, "Handmade bowl", Decimal(price), currency, Decimal(fee_percent)
        )

    async def advance_to_delivered(
        self, order: Order, buyer: User, seller: User
    ) -> Order:
        """Run the happy path up to ``delivered``."""
        await self.orders.confirm(order.id, seller.id)
        await self.orders.mark_paid(order.id, buyer.id)
        await self.orders.verify_payment(order.id, seller.id)
        await self.orders.ship(order.id, seller.id, "TH0001", "Kerry Express")
        return await self.orders.mark_delivered(order.id, buyer.id)


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh database file with all tables."""
    engine = create_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'fingrow_test.db'}", echo=False
    )
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return create_session_maker(engine)


@pytest_asyncio.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def order_guard():
    """Per-test guard so tests never share held keys."""
    return KeyGuard("order-test")


@pytest.fixture
def market(session, core_config, order_guard):
    return Marketplace(session, core_config, order_guard)


@pytest_asyncio.fixture
async def priced(market):
    """Root account and a live THB rate."""
    root = await market.root()
    await market.rates.record_live_rates({"THB": THB_RATE})
    return root
