"""Money rounding helpers. All amounts are Decimal, settled to the cent."""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional


CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_money(value: Any) -> Decimal:
    """Quantize a number to two decimal places (half-up)."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def safe_decimal(value: Any) -> Optional[Decimal]:
    """Convert untrusted input to Decimal, returning None when it can't be read."""
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, str):
            value = value.replace(",", "").strip()
            if not value:
                return None
        result = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not result.is_finite():
        return None
    return result
