"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from fingrow.models.base import Base
from fingrow.models.earning import Earning
from fingrow.models.enums import (
    EarningType,
    InviterAssignment,
    OrderStatus,
    ProductStatus,
    RateSource,
    ReferralStatus,
)
from fingrow.models.exchange_rate import ExchangeRate, RateLock
from fingrow.models.order import Order, OrderTransition
from fingrow.models.product import Product
from fingrow.models.referral import Referral
from fingrow.models.user import User

__all__ = [
    # Base
    "Base",
    # Enums
    "EarningType",
    "InviterAssignment",
    "OrderStatus",
    "ProductStatus",
    "RateSource",
    "ReferralStatus",
    # Core Models
    "User",
    "Product",
    "Order",
    "OrderTransition",
    "Earning",
    "Referral",
    # Exchange rates
    "ExchangeRate",
    "RateLock",
]
