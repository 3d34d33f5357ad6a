"""
kpi/money.py

Decimal helpers shared by the formula modules.

Monetary values stay Decimal through the whole computation and are
rounded half-up only at the point a metric is returned.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")
_CENTS = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """
    Coerce a synced numeric field to Decimal.

    Floats go through ``str`` so ``0.1`` becomes ``Decimal("0.1")``.
    Malformed, missing or non-finite values become ``0``.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return ZERO
    return parsed if parsed.is_finite() else ZERO


def round_money(value: Decimal) -> Decimal:
    """Round to 2 fractional digits, half-up."""
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


def round_half_up(value: float | Decimal, places: int = 1) -> float:
    """
    Round a ratio or percentage half-up and return it as float.

    ``round()`` uses banker's rounding, which would turn 12.25 into 12.2.
    """
    exponent = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(exponent, rounding=ROUND_HALF_UP))


def safe_percent(numerator: float | Decimal, denominator: float | Decimal) -> float:
    """``numerator / denominator * 100``, or 0 when the denominator is 0."""
    if not denominator:
        return 0.0
    return float(numerator) / float(denominator) * 100.0
