"""
Money helpers.

Amounts are held as integer minor units (paisa) so totals never drift;
conversion to and from decimal rupees happens only at the edges.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

MINOR_UNITS_PER_MAJOR = 100
CURRENCY_SYMBOL = "₹"

Amount = Union[int, float, str, Decimal]


def to_minor(amount: Amount) -> int:
    """
    Convert a major-unit amount to integer minor units.

    Floats go through ``str`` first so 0.1 becomes exactly 10 paisa.

    Raises:
        ValueError: If the amount is not a finite number.
    """
    try:
        value = Decimal(str(amount))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {amount!r}") from exc

    if not value.is_finite():
        raise ValueError(f"Invalid amount: {amount!r}")

    minor = (value * MINOR_UNITS_PER_MAJOR).quantize(
        Decimal("1"), rounding=ROUND_HALF_UP
    )
    return int(minor)


def to_major(minor: int) -> Decimal:
    return (Decimal(minor) / MINOR_UNITS_PER_MAJOR).quantize(Decimal("0.01"))


def format_minor(minor: int) -> str:
    """Render minor units for display, e.g. 12550 -> '₹125.50'."""
    return f"{CURRENCY_SYMBOL}{to_major(minor):.2f}"
