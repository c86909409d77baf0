"""
Commission services package.

- calculator: pure fee/payout split of one order
- engine: idempotent settlement into the earnings ledger
"""

from fingrow.services.commission.calculator import (
    ReferralLine,
    SettlementPlan,
    calculate,
    fee_pool,
)
from fingrow.services.commission.engine import CommissionEngine, SettlementResult


__all__ = [
    "CommissionEngine",
    "ReferralLine",
    "SettlementPlan",
    "SettlementResult",
    "calculate",
    "fee_pool",
]
