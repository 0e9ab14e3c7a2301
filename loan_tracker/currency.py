"""
Currency Precision Module

Decimal helpers for monetary values. Loans are tracked in a single currency,
so only the precision and rounding policy live here. NEVER uses float for
monetary values.
"""

from decimal import Decimal, ROUND_HALF_UP, getcontext, InvalidOperation
from typing import Any, Optional

# Set global decimal context for financial precision
getcontext().prec = 28

CURRENCY_PRECISION = 2
CENT = Decimal('0.1') ** CURRENCY_PRECISION
ZERO = Decimal('0.00')


def to_decimal(value: Any) -> Decimal:
    """
    Convert a number or numeric string to Decimal without going through float

    Raises:
        ValueError: unparseable input, NaN or infinity
    """
    if isinstance(value, float):
        # str() keeps the shortest repr, avoiding binary float noise
        value = str(value)
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(value)
        except (InvalidOperation, TypeError, ValueError):
            raise ValueError(f"Not a valid decimal amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Amount must be finite: {value!r}")
    return amount


def round_money(value: Any) -> Decimal:
    """Round to currency precision using ROUND_HALF_UP"""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def money_to_str(value: Optional[Decimal]) -> Optional[str]:
    """Serialize a Decimal amount for storage"""
    if value is None:
        return None
    return str(round_money(value))


def sum_money(values) -> Decimal:
    """Sum amounts, returning a currency-precision Decimal"""
    total = ZERO
    for value in values:
        total += to_decimal(value)
    return round_money(total)
