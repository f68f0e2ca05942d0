# zenith_backend/services/money.py
"""
Money is persisted as integer minor units (paise). Decimal is used only at
the edges: parsing request input and rendering JSON / documents.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from zenith_backend.errors import ValidationError

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
# largest amount accepted from input, in rupees
MAX_AMOUNT = Decimal("10000000000")
MAX_MINOR = int(MAX_AMOUNT * HUNDRED)


def to_decimal(val, field: str = "") -> Decimal:
    """Parse a user-supplied amount; raises ValidationError on garbage."""
    if isinstance(val, bool):
        raise ValidationError(f"Invalid value for {field or 'amount'}.")
    try:
        d = Decimal(str(val).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid value for {field or 'amount'}.")
    if not d.is_finite():
        raise ValidationError(f"Invalid value for {field or 'amount'}.")
    return d


def to_minor(val, field: str = "", allow_negative: bool = False) -> int:
    d = to_decimal(val, field)
    if abs(d) > MAX_AMOUNT:
        raise ValidationError(f"{field or 'Amount'} is too large.")
    d = d.quantize(CENT, rounding=ROUND_HALF_UP)
    if d < 0 and not allow_negative:
        raise ValidationError(f"{field or 'Amount'} must not be negative.")
    return int(d * 100)


def from_minor(minor: int | None) -> Decimal:
    return (Decimal(int(minor or 0)) / HUNDRED).quantize(CENT)


def as_float(minor: int | None) -> float:
    """JSON rendering helper (2 decimal places)."""
    return float(from_minor(minor))


def percent_of(minor: int, percent: Decimal) -> int:
    """minor × percent / 100, rounded half-up to the nearest paisa."""
    raw = Decimal(int(minor)) * Decimal(percent) / HUNDRED
    return int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
