"""Money helpers shared by the pricing services."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_FLOOR, ROUND_HALF_UP
from typing import Any, Final

MONEY_PLACES: Final = Decimal("0.01")
ZERO: Final = Decimal("0.00")


def to_money(value: Decimal | float | int | str) -> Decimal:
    """Normalize numeric values to a money-safe decimal."""

    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def to_str(value: Decimal) -> str:
    return f"{value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP):.2f}"


def _parse(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        parsed = value
    else:
        text = str(value).strip().replace(",", "").lstrip("$")
        if not text:
            return None
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            return None
    if not parsed.is_finite():
        return None
    return parsed


def coerce_amount(value: Any) -> Decimal:
    """Parse a user-entered amount, falling back to zero.

    Blank, non-numeric, non-finite and negative entries all become 0.00.
    """

    parsed = _parse(value)
    if parsed is None or parsed < 0:
        return ZERO
    return to_money(parsed)


def coerce_quantity(value: Any) -> int:
    """Parse a user-entered count (e.g. boxes), falling back to zero."""

    parsed = _parse(value)
    if parsed is None or parsed < 0:
        return 0
    return int(parsed.to_integral_value(rounding=ROUND_FLOOR))


def clamp(value: Decimal, lower: Decimal, upper: Decimal) -> Decimal:
    """Clamp ``value`` into ``[lower, upper]``; an inverted range yields ``lower``."""

    if upper < lower:
        return lower
    return max(lower, min(value, upper))
