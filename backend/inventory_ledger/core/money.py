"""
Money helpers

Amounts are rounded with round_money before they are computed with or
stored in a Numeric(15, 2) column.
"""
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")


def round_money(value, rounding: str = ROUND_HALF_UP) -> Decimal:
    """Round a monetary value to cents"""
    return Decimal(value).quantize(CENT, rounding=rounding)
