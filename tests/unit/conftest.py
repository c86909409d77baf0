"""
Shared fixtures for unit tests.

This module provides common fixtures used across multiple test modules:
- Mock order objects
- Ancestor chains
- OrderLifecycleManager with mocked repositories
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from fingrow.models.enums import OrderStatus
from fingrow.services.order.manager import OrderLifecycleManager
from fingrow.services.referral.graph import Ancestor
from fingrow.utils.key_guard import KeyGuard


@pytest.fixture
def mock_order():
    """
    Create mock order object with default values.

    Default values:
    - id: 1, buyer 10, seller 20, product 30
    - subtotal: 300 THB, no shipping
    - fin_fee_percent: 7 (community_fee 21)
    - status: delivered, version 6

    Returns:
        MagicMock: Mock order object
    """
    order = MagicMock()
    order.id = 1
    order.buyer_id = 10
    order.seller_id = 20
    order.product_id = 30
    order.currency_code = "THB"
    order.subtotal = Decimal("300")
    order.shipping_fee = Decimal("0")
    order.total_amount = Decimal("300")
    order.fin_fee_percent = Decimal("7")
    order.community_fee = Decimal("21")
    order.conversion_rate = Decimal("30")
    order.status = OrderStatus.DELIVERED.value
    order.version = 6
    return order


@pytest.fixture
def three_level_chain():
    """Seller's inviters at levels 1-3."""
    return [
        Ancestor(user_id=101, level=1),
        Ancestor(user_id=102, level=2),
        Ancestor(user_id=103, level=3),
    ]


@pytest.fixture
def mock_user_factory():
    """
    Build mock users.

    Returns:
        Callable creating an active MagicMock user
    """

    def _make(user_id: int, is_admin: bool = False, is_active: bool = True):
        user = MagicMock()
        user.id = user_id
        user.is_admin = is_admin
        user.is_active = is_active
        return user

    return _make


@pytest.fixture
def order_manager(mock_session, core_config, mock_order, mock_user_factory):
    """
    OrderLifecycleManager whose repositories and engine are mocks.

    The order repository returns ``mock_order``; the user repository
    resolves ids 10 (buyer), 20 (seller) and 99 (admin).

    Returns:
        OrderLifecycleManager: Manager for testing
    """
    users = {
        10: mock_user_factory(10),
        20: mock_user_factory(20),
        99: mock_user_factory(99, is_admin=True),
    }

    manager = OrderLifecycleManager(
        mock_session,
        core_config,
        commission_engine=AsyncMock(),
        rate_lock=AsyncMock(),
        guard=KeyGuard("order-unit"),
    )
    manager.order_repo = AsyncMock()
    manager.order_repo.get_by_id = AsyncMock(return_value=mock_order)
    manager.order_repo.compare_and_set_status = AsyncMock(return_value=True)
    manager.product_repo = AsyncMock()
    manager.user_repo = AsyncMock()
    manager.user_repo.get_by_id = AsyncMock(side_effect=lambda uid: users.get(uid))
    return manager
