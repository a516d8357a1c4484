from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Optional

CENT = Decimal("0.01")


class AmountTooLargeError(ValueError):
    """Value has more digits than a Decimal context can quantize to cents."""


def to_decimal(value: Any) -> Decimal:
    """
    Normalize a price-like value to a 2-place Decimal (half-up).

    Floats go through str() so 0.1 stays 0.10 instead of 0.1000000000000000055.
    """
    if isinstance(value, Decimal):
        d = value
    elif isinstance(value, bool):
        raise ValueError("amount must be a number")
    elif isinstance(value, (int, float)):
        d = Decimal(str(value))
    elif isinstance(value, str):
        try:
            d = Decimal(value.strip())
        except InvalidOperation:
            raise ValueError("amount must be a number")
    else:
        raise ValueError("amount must be a number")
    if not d.is_finite():
        raise ValueError("amount must be a finite number")
    try:
        return d.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise AmountTooLargeError("amount is too large")


def to_json_amount(value: Optional[Decimal]) -> Optional[float]:
    """Money is stored as Numeric and returned to clients as a JSON number."""
    if value is None:
        return None
    return float(to_decimal(value))
