"""
Business logic constants for the Fingrow marketplace.

Central location for business rules shared by services and jobs.
This module must not import settings to stay free of circular imports.
"""

from decimal import Decimal


# Referral program defaults.
# Level 1 is the seller's direct inviter. Rates are fractions of the fee pool.
DEFAULT_REFERRAL_MAX_DEPTH = 7
DEFAULT_REFERRAL_RATES = (
    Decimal("0.10"),  # level 1
    Decimal("0.05"),  # level 2
    Decimal("0.03"),  # level 3
    Decimal("0.01"),  # level 4
    Decimal("0.01"),  # level 5
    Decimal("0.01"),  # level 6
    Decimal("0.01"),  # level 7
)

# Listing fee ("community share") bounds, percent of the item price
FIN_FEE_MIN_PERCENT = Decimal("1")
FIN_FEE_MAX_PERCENT = Decimal("7")

# Money precision used for every persisted amount
MONEY_DECIMAL_PLACES = 8

# Invite code generation
INVITE_CODE_SUFFIX_LENGTH = 6
INVITE_CODE_MAX_ATTEMPTS = 10

# Order number prefix (ORD<epoch ms><random>)
ORDER_NUMBER_PREFIX = "ORD"
