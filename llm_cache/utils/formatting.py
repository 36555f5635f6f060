"""Presentation helpers for dashboard figures."""

import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

Number = Union[int, float, Decimal]

_CENTS = Decimal("0.01")
_TENTHS = Decimal("0.1")


def to_decimal(value: Number) -> Decimal:
    """Convert a finite number to Decimal.

    Floats go through repr so 12.5 becomes Decimal("12.5"), not the binary
    expansion.

    Raises:
        ValueError: If value is NaN or infinite.
    """
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValueError(f"Expected a finite number, got {value}")
        return value
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"Expected a finite number, got {value}")
    return Decimal(str(value))


def quantize_half_up(value: Number, exponent: Decimal) -> Decimal:
    """Round to ``exponent`` with half-up rounding.

    Raises:
        ValueError: If value is NaN, infinite, or too large to represent at
            that precision.
    """
    try:
        return to_decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise ValueError(f"Amount out of range: {value}") from e


def format_cost(value: Number) -> str:
    """Format a USD amount as ``$X.XX`` (half-up rounding).

    >>> format_cost(12.5)
    '$12.50'
    """
    amount = quantize_half_up(value, _CENTS)
    if amount == 0:
        amount = abs(amount)
    elif amount < 0:
        return f"-${-amount}"
    return f"${amount}"


def format_hit_rate(ratio: Number) -> str:
    """Format a 0..1 ratio as a percentage with one decimal.

    >>> format_hit_rate(0.7)
    '70.0%'
    """
    percent = quantize_half_up(to_decimal(ratio) * 100, _TENTHS)
    return f"{percent}%"
