"""
Scaled-integer encoding for hours and money.

Persisted hours and amounts are integers equal to the decimal value x 100
(1.5h -> 150, CHF 150.00 -> 15000). Rounding is always half-up.

Usage:
    from hourbook.domain.scaled import to_scaled, from_scaled

    to_scaled("1.5")       -> 150
    to_scaled(0.335)       -> 34
    from_scaled(150)       -> Decimal("1.50")
"""
from decimal import Decimal, ROUND_HALF_UP

SCALE = 100

_ONE = Decimal("1")
_CENT = Decimal("0.01")


def as_decimal(value) -> Decimal:
    """int / float / str / Decimal -> Decimal (floats via their repr, not binary value)."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def round_half_up(value) -> int:
    return int(as_decimal(value).quantize(_ONE, rounding=ROUND_HALF_UP))


def to_scaled(value) -> int:
    """Decimal value -> scaled integer, rounded half-up."""
    return round_half_up(as_decimal(value) * SCALE)


def from_scaled(value: int) -> Decimal:
    """Scaled integer -> Decimal with two places."""
    return (Decimal(value) / SCALE).quantize(_CENT)


def scaled_product(hours_scaled: int, rate_scaled: int) -> int:
    """
    Amount for hours x rate, both scaled; result scaled.

    Equal to round_half_up(hours/100 * rate/100 * 100).
    """
    return round_half_up(Decimal(hours_scaled) * Decimal(rate_scaled) / SCALE)
