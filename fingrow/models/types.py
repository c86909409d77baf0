"""
Standard type definitions for database models.

Provides consistent types for monetary, rate and percentage fields.
"""

from sqlalchemy import DECIMAL

# Standard money type for prices, fees, balances and earnings
# Precision: 18 digits total, 8 after decimal point
# Range: up to 9,999,999,999.99999999
MoneyType = DECIMAL(18, 8)

# Exchange rate type (price of 1 WLD in a local currency)
# Precision: 24 digits total, 12 after decimal point
RateType = DECIMAL(24, 12)

# Listing fee percentage (e.g. 7.00 = 7%)
# Precision: 5 digits total, 2 after decimal point
PercentType = DECIMAL(5, 2)

# Referral commission rate as a fraction of the fee pool (0.1000 = 10%)
# Precision: 6 digits total, 4 after decimal point
CommissionRateType = DECIMAL(6, 4)
