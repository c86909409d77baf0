"""
Money helpers.

All amounts are Decimal and quantized to the persisted precision.
"""

from decimal import ROUND_HALF_UP, Decimal

from fingrow.config.business_constants import MONEY_DECIMAL_PLACES


MONEY_QUANTUM = Decimal(1).scaleb(-MONEY_DECIMAL_PLACES)
ZERO = Decimal("0")


def quantize_money(amount: Decimal) -> Decimal:
    """
    Round amount to the stored precision (8 places, half up).

    Args:
        amount: Raw Decimal amount

    Returns:
        Quantized amount
    """
    return Decimal(amount).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, percent: Decimal) -> Decimal:
    """
    Calculate ``percent`` % of ``amount``.

    Example: percent_of(300, 7) == 21
    """
    return quantize_money(amount * percent / Decimal("100"))


def to_wld(amount_local: Decimal, rate: Decimal) -> Decimal:
    """
    Convert a local-currency amount to WLD.

    ``rate`` is the price of 1 WLD in the local currency.
    A zero rate converts to zero.
    """
    if not rate:
        return ZERO
    return quantize_money(Decimal(amount_local) / Decimal(rate))
