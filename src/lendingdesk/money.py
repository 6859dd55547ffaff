"""Helpers for money amounts.

Amounts are stored as integer cents and exposed as two-place ``Decimal``.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

Amount = Union[Decimal, int, float, str]

CENT = Decimal("0.01")

# Largest amount accepted anywhere; keeps cents well inside a 64-bit column.
MAX_AMOUNT = Decimal("1000000000.00")


def to_decimal(amount: Amount) -> Decimal:
    """Normalize an amount to a two-place Decimal.

    Raises:
        ValueError: if the amount is NaN, infinite or above ``MAX_AMOUNT``
    """
    if not isinstance(amount, Decimal):
        amount = Decimal(str(amount))
    if not amount.is_finite():
        raise ValueError(f"Amount must be a finite number, got {amount}")
    if abs(amount) > MAX_AMOUNT:
        raise ValueError(f"Amount exceeds the maximum of {MAX_AMOUNT}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(amount: Amount) -> int:
    """Convert an amount to integer cents."""
    return int(to_decimal(amount) * 100)


def from_cents(cents: int) -> Decimal:
    """Convert integer cents to a two-place Decimal."""
    return (Decimal(cents) / 100).quantize(CENT)


def format_amount(amount: Amount) -> str:
    """Format an amount for messages, e.g. ``$10.00``."""
    return f"${to_decimal(amount)}"
