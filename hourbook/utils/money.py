"""
Money formatting for scaled integers.

Usage:
    from hourbook.utils.money import format_money

    format_money(1234550)          -> "CHF 12'345.50"
    format_money(15000, "EUR")     -> "EUR 150.00"
"""
from hourbook.domain.scaled import from_scaled


def format_money(amount_scaled: int, currency: str = "CHF") -> str:
    """
    Swiss style: apostrophe as thousands separator, two decimals, currency prefix.

    Args:
        amount_scaled: amount in minor units (x100)
        currency: ISO code printed before the amount
    """
    formatted = f"{from_scaled(amount_scaled):,.2f}".replace(",", "'")
    return f"{currency} {formatted}"

