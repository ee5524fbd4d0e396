"""
Validation utilities for decimal input (rates, hours)
"""
import re
from decimal import Decimal, InvalidOperation

from hourbook.domain.scaled import to_scaled
from hourbook.errors import ValidationError


def normalize_decimal_input(value: str) -> str:
    """
    Normalize user input: comma as decimal separator becomes a dot

    Example:
        >>> normalize_decimal_input("150,50")
        "150.50"
    """
    return value.strip().replace(",", ".")


def validate_decimal_amount(value: str, max_decimal_places: int = 2) -> tuple[bool, str | None]:
    """
    Validate a non-negative decimal string

    Returns:
        (is_valid, error_message)

    Example:
        >>> validate_decimal_amount("100.50")
        (True, None)
        >>> validate_decimal_amount("100.505")
        (False, "At most 2 decimal places")
    """
    normalized = normalize_decimal_input(value)

    try:
        Decimal(normalized)
    except (InvalidOperation, ValueError):
        return False, "Invalid amount"

    pattern = rf"^\d+(\.\d{{1,{max_decimal_places}}})?$"
    if not re.match(pattern, normalized):
        if normalized.startswith("-"):
            return False, "Amount must not be negative"
        return False, f"At most {max_decimal_places} decimal places"

    return True, None


def parse_scaled_amount(value, field: str = "amount") -> int:
    """
    Decimal string / number -> scaled integer

    Raises:
        ValidationError: if the value is malformed, negative or has more than 2 decimals
    """
    is_valid, error = validate_decimal_amount(str(value))
    if not is_valid:
        raise ValidationError(f"{field}: {error}")
    return to_scaled(normalize_decimal_input(str(value)))
