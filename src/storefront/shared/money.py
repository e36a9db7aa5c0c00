"""Monetary rounding helpers.

Amounts are stored as floats but always rounded half-up to cents through
``Decimal`` so that 0.125 becomes 0.13 rather than the banker's 0.12.
"""

from decimal import ROUND_HALF_UP, Decimal

CENTS = Decimal("0.01")


def to_decimal(amount) -> Decimal:
    # str() first so 0.1 stays 0.1 instead of its binary expansion
    return Decimal(str(amount))


def round_money(amount) -> float:
    """Round an amount half-up to two decimal places."""
    return float(to_decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP))


def line_total(unit_price, quantity) -> Decimal:
    return to_decimal(unit_price) * quantity
