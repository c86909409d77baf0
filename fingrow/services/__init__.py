"""
Services.

Business logic layer.
"""

# Base Service Infrastructure
from fingrow.services.base_service import (
    BaseService,
    log_operation,
    transaction,
)
from fingrow.services.core_config import CoreConfig, default_config

# Core Services
from fingrow.services.commission import CommissionEngine, SettlementResult
from fingrow.services.exchange_rate import (
    ExchangeRateLock,
    RateFeedClient,
    RateQuote,
)
from fingrow.services.order import OrderLifecycleManager
from fingrow.services.referral import ReferralGraph

# Supporting Services
from fingrow.services.earnings_service import EarningsService
from fingrow.services.product_service import ProductService
from fingrow.services.user_service import UserService


__all__ = [
    # Base
    "BaseService",
    "CoreConfig",
    "default_config",
    "log_operation",
    "transaction",
    # Core
    "CommissionEngine",
    "ExchangeRateLock",
    "OrderLifecycleManager",
    "RateFeedClient",
    "RateQuote",
    "ReferralGraph",
    "SettlementResult",
    # Supporting
    "EarningsService",
    "ProductService",
    "UserService",
]
